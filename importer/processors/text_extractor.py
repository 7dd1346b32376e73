"""文档树的纯文本与统计信息"""
import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from ..utils.helpers import strip_tags

_WS_RE = re.compile(r'\s+')

_INLINE_CONTAINERS = ('paragraph', 'heading')

@dataclass
class DocumentStats:
    characters: int = 0
    lines: int = 0

    def to_dict(self) -> dict:
        return {'characters': self.characters, 'lines': self.lines}

def extract_text_from_tiptap_json(content: Optional[str]) -> str:
    """
    把序列化的文档树展平为搜索文本

    子节点之间用单个空格连接，最终折叠空白并去掉首尾空白；
    加密块不参与。内容不是 JSON 时按旧版 HTML 去标签。
    """
    if not content:
        return ''

    try:
        doc = json.loads(content)
    except ValueError:
        return strip_tags(content)

    if not isinstance(doc, dict):
        return ''
    return _WS_RE.sub(' ', _flatten(doc)).strip()

def _node_text(node: dict) -> str:
    text = node.get('text')
    return text if isinstance(text, str) else ''

def _flatten(node: Any) -> str:
    if not isinstance(node, dict) or node.get('type') == 'encryptedBlock':
        return ''

    if node.get('type') == 'text' and _node_text(node):
        return _node_text(node)

    children = node.get('content')
    if isinstance(children, list):
        return ' '.join(text for text in (_flatten(child) for child in children) if text)
    return ''

def count_document_stats(content: Optional[str]) -> DocumentStats:
    """
    统计字符数与行数

    characters 为全部文本节点长度之和；lines 为结构化渲染结果中换行数加一：
    段落/标题内部不换行，表格行的单元格用制表符连接为一行，
    代码块保留内部换行，hardBreak 为换行，其余容器按行连接子节点。
    """
    if not content:
        return DocumentStats()

    try:
        doc = json.loads(content)
    except ValueError:
        text = strip_tags(content)
        return DocumentStats(characters=len(text), lines=1 if text else 0)

    if not isinstance(doc, dict):
        return DocumentStats()

    rendered = _render(doc)
    return DocumentStats(
        characters=_count_characters(doc),
        lines=rendered.count('\n') + 1 if rendered else 0,
    )

def _count_characters(node: Any) -> int:
    if not isinstance(node, dict) or node.get('type') == 'encryptedBlock':
        return 0
    if node.get('type') == 'text':
        return len(_node_text(node))
    children = node.get('content')
    if isinstance(children, list):
        return sum(_count_characters(child) for child in children)
    return 0

def _render(node: Any) -> str:
    if not isinstance(node, dict):
        return ''

    node_type = node.get('type')
    if node_type == 'text':
        return _node_text(node)
    if node_type == 'hardBreak':
        return '\n'

    children = node.get('content')
    if not isinstance(children, list):
        return ''
    children = [child for child in children
                if not (isinstance(child, dict) and child.get('type') == 'encryptedBlock')]

    if node_type in _INLINE_CONTAINERS or node_type == 'codeBlock':
        return ''.join(_render(child) for child in children)

    if node_type == 'tableRow':
        return '\t'.join(_render(cell).replace('\n', ' ') for cell in children)

    return '\n'.join(_render(child) for child in children)
