"""HTML到文档树转换处理器"""
import copy
import json
import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, NavigableString, Comment, Doctype, Declaration, ProcessingInstruction, CData

from ..config import Config
from ..exceptions import ConversionError
from ..utils.helpers import strip_tags
from ..utils.logger import get_logger

logger = get_logger()

Node = Dict[str, object]

EMPTY_DOCUMENT: Node = {'type': 'doc', 'content': [{'type': 'paragraph'}]}

BLOCK_TAGS = [
    'p', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'ul', 'ol', 'li', 'blockquote', 'pre',
    'table', 'thead', 'tbody', 'tfoot', 'tr', 'td', 'th', 'hr', 'div', 'section',
    'article', 'header', 'footer', 'main', 'nav', 'aside', 'figure', 'encrypted-block',
]
SKIP_TAGS = {'script', 'style', 'head', 'title', 'noscript', 'template', 'colgroup', 'col'}
ROW_GROUP_TAGS = {'thead', 'tbody', 'tfoot'}

MARK_TAGS = {
    'strong': 'bold', 'b': 'bold',
    'em': 'italic', 'i': 'italic',
    's': 'strike', 'strike': 'strike', 'del': 'strike',
    'u': 'underline',
    'code': 'code',
}

_WS_RE = re.compile(r'\s+')
_SKIPPED_STRINGS = (Comment, Doctype, Declaration, ProcessingInstruction, CData)

def fallback_document(text: str) -> Node:
    """纯文本降级：单个段落"""
    paragraph: Node = {'type': 'paragraph'}
    if text:
        paragraph['content'] = [{'type': 'text', 'text': text}]
    return {'type': 'doc', 'content': [paragraph]}

def _int_attr(value, default: Optional[int]) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default

class HtmlTreeBuilder:
    """
    基于 BeautifulSoup (lxml) 的 HTML -> 文档树构建器

    块级元素映射为块节点，行内内容合并进段落；段落外的行内内容自动包裹段落，
    代码块之外的空白折叠。
    """

    def __init__(self, line_height: str = Config.DEFAULT_LINE_HEIGHT):
        self.line_height = line_height

    def build(self, html: str) -> Node:
        soup = BeautifulSoup(html, Config.HTML_PARSER)
        root = soup.body or soup
        content = self._blocks(root)
        if not content:
            content = [self._paragraph([])]
        doc = {'type': 'doc', 'content': content}
        self._check(doc)
        return doc

    @staticmethod
    def _check(doc: Node) -> None:
        """单元格中只能出现块级节点"""
        def walk(node: Node) -> None:
            children = node.get('content') or []
            if node['type'] in ('tableCell', 'tableHeader'):
                if any(child['type'] in ('text', 'hardBreak', 'image') for child in children):
                    raise ConversionError(f"{node['type']} 中出现行内节点")
            for child in children:
                walk(child)

        walk(doc)

    # ---- 块级 ----

    def _blocks(self, element) -> List[Node]:
        """把元素的子节点转换为块节点列表"""
        blocks: List[Node] = []
        pending: List[Node] = []

        def flush() -> None:
            if pending:
                inline = self._finish_inline(pending)
                if inline:
                    blocks.append(self._paragraph(inline))
                pending.clear()

        for child in element.children:
            if isinstance(child, NavigableString):
                pending.extend(self._inline(child, []))
                continue
            if child.name in SKIP_TAGS:
                continue
            if self._is_block(child):
                flush()
                blocks.extend(self._block(child))
            else:
                pending.extend(self._inline(child, []))

        flush()
        return blocks

    def _is_block(self, element) -> bool:
        if element.name in BLOCK_TAGS:
            return True
        # 包含块级后代的行内标签按容器处理
        return element.name not in ('img', 'br', 'input') and element.find(BLOCK_TAGS) is not None

    def _block(self, element) -> List[Node]:
        name = element.name

        if name == 'p':
            if element.find(BLOCK_TAGS) is not None:
                return self._blocks(element)
            inline = self._finish_inline(self._inline_children(element, []))
            return [self._paragraph(inline)]

        if name in ('h1', 'h2', 'h3', 'h4', 'h5', 'h6'):
            inline = self._finish_inline(self._inline_children(element, []))
            node: Node = {'type': 'heading', 'attrs': {'lineHeight': self.line_height, 'level': int(name[1])}}
            if inline:
                node['content'] = inline
            return [node]

        if name in ('ul', 'ol'):
            return [self._list(element)]

        if name == 'li':
            return [{'type': 'bulletList', 'content': [self._list_item(element)]}]

        if name == 'blockquote':
            return [{'type': 'blockquote', 'content': self._blocks(element) or [self._paragraph([])]}]

        if name == 'pre':
            return [self._code_block(element)]

        if name == 'hr':
            return [{'type': 'horizontalRule'}]

        if name == 'table':
            table = self._table(element)
            return [table] if table else []

        if name == 'encrypted-block':
            return [{
                'type': 'encryptedBlock',
                'attrs': {
                    'ciphertext': element.get('ciphertext', ''),
                    'createdBy': element.get('createdby'),
                },
            }]

        # div、section、表格片段等容器：展开子节点
        return self._blocks(element)

    def _paragraph(self, inline: List[Node]) -> Node:
        node: Node = {'type': 'paragraph', 'attrs': {'lineHeight': self.line_height}}
        if inline:
            node['content'] = inline
        return node

    def _list(self, element) -> Node:
        items: List[Node] = []
        for child in element.children:
            if isinstance(child, NavigableString):
                if not isinstance(child, _SKIPPED_STRINGS) and str(child).strip():
                    items.append(self._inline_item(child))
                continue
            if child.name in SKIP_TAGS:
                continue
            # 列表下直接出现的行内元素保留自身格式
            if child.name not in ('li', 'ul', 'ol') and not self._is_block(child):
                items.append(self._inline_item(child))
                continue
            items.append(self._list_item(child))

        if element.name == 'ol':
            start = _int_attr(element.get('start'), 1)
            return {'type': 'orderedList', 'attrs': {'start': start}, 'content': items or [self._list_item(None)]}
        return {'type': 'bulletList', 'content': items or [self._list_item(None)]}

    def _inline_item(self, node) -> Node:
        return {'type': 'listItem', 'content': [self._paragraph(self._finish_inline(self._inline(node, [])))]}

    def _list_item(self, element) -> Node:
        if element is None:
            content = []
        elif element.name in ('ul', 'ol'):
            content = [self._list(element)]
        else:
            content = self._blocks(element)
        # 列表项的第一个子节点必须是段落
        if not content or content[0]['type'] != 'paragraph':
            content.insert(0, self._paragraph([]))
        return {'type': 'listItem', 'content': content}

    def _code_block(self, element) -> Node:
        language = None
        code = element.find('code')
        for cls in (code.get('class', []) if code is not None else []):
            if cls.startswith('language-'):
                language = cls[len('language-'):]
                break

        node: Node = {'type': 'codeBlock', 'attrs': {'language': language}}
        text = element.get_text()
        if text:
            node['content'] = [{'type': 'text', 'text': text}]
        return node

    def _table(self, element) -> Optional[Node]:
        rows: List[Node] = []
        for child in element.find_all(True, recursive=False):
            if child.name in ROW_GROUP_TAGS:
                rows.extend(self._row(tr) for tr in child.find_all('tr', recursive=False))
            elif child.name == 'tr':
                rows.append(self._row(child))

        rows = [row for row in rows if row.get('content')]
        if not rows:
            return None
        return {'type': 'table', 'content': rows}

    def _row(self, element) -> Node:
        cells = []
        for cell in element.find_all(['td', 'th'], recursive=False):
            colwidth = cell.get('colwidth')
            widths = [_int_attr(w, 0) for w in colwidth.split(',')] if colwidth else None
            cells.append({
                'type': 'tableHeader' if cell.name == 'th' else 'tableCell',
                'attrs': {
                    'colspan': _int_attr(cell.get('colspan'), 1),
                    'rowspan': _int_attr(cell.get('rowspan'), 1),
                    'colwidth': widths,
                },
                'content': self._blocks(cell) or [self._paragraph([])],
            })
        node: Node = {'type': 'tableRow'}
        if cells:
            node['content'] = cells
        return node

    # ---- 行内 ----

    def _inline_children(self, element, marks: List[Node]) -> List[Node]:
        nodes: List[Node] = []
        for child in element.children:
            nodes.extend(self._inline(child, marks))
        return nodes

    def _inline(self, node, marks: List[Node]) -> List[Node]:
        """转换行内节点，marks 为外层累积的格式"""
        if isinstance(node, NavigableString):
            if isinstance(node, _SKIPPED_STRINGS):
                return []
            text = _WS_RE.sub(' ', str(node))
            return [self._text(text, marks)] if text else []

        name = node.name
        if name in SKIP_TAGS:
            return []

        if name == 'br':
            return [{'type': 'hardBreak'}]

        if name == 'img':
            return [{
                'type': 'image',
                'attrs': {'src': node.get('src'), 'alt': node.get('alt'), 'title': node.get('title')},
            }]

        if name == 'input':
            if (node.get('type') or '').lower() != 'checkbox':
                return []
            return [self._text('[x] ' if node.has_attr('checked') else '[ ] ', marks)]

        if name == 'a' and node.get('href'):
            return self._inline_children(node, self._with_mark(marks, 'link', {'href': node['href']}))

        if name in MARK_TAGS:
            return self._inline_children(node, self._with_mark(marks, MARK_TAGS[name]))

        return self._inline_children(node, marks)

    @staticmethod
    def _with_mark(marks: List[Node], mark_type: str, attrs: Optional[dict] = None) -> List[Node]:
        if any(mark['type'] == mark_type for mark in marks):
            return marks
        mark: Node = {'type': mark_type}
        if attrs:
            mark['attrs'] = attrs
        return marks + [mark]

    @staticmethod
    def _text(text: str, marks: List[Node]) -> Node:
        node: Node = {'type': 'text', 'text': text}
        if marks:
            node['marks'] = list(marks)
        return node

    @staticmethod
    def _finish_inline(nodes: List[Node]) -> List[Node]:
        """合并相同格式的相邻文本，折叠空白并去掉段首/段尾与换行两侧的空白"""
        merged: List[Node] = []
        for node in nodes:
            prev = merged[-1] if merged else None
            if (prev is not None and node['type'] == 'text' and prev['type'] == 'text'
                    and prev.get('marks') == node.get('marks')):
                prev['text'] += node['text']
            else:
                merged.append(dict(node))

        for i, node in enumerate(merged):
            if node['type'] != 'text':
                continue
            text = _WS_RE.sub(' ', node['text'])
            if i == 0 or merged[i - 1]['type'] == 'hardBreak':
                text = text.lstrip()
            if i == len(merged) - 1 or merged[i + 1]['type'] == 'hardBreak':
                text = text.rstrip()
            node['text'] = text

        # 不同格式的相邻文本之间只保留一个空格
        for prev, node in zip(merged, merged[1:]):
            if prev['type'] == 'text' and node['type'] == 'text' and prev['text'].endswith(' '):
                node['text'] = node['text'].lstrip(' ')

        return [node for node in merged if node['type'] != 'text' or node['text']]

class TreeConverter:
    """
    规范化 HTML -> 序列化的文档树

    空内容直接得到单个空段落；构建器的任何异常都被捕获，
    降级为去标签后的纯文本段落，不会向调用方抛出。
    """

    def __init__(self, builder: Optional[HtmlTreeBuilder] = None):
        self.builder = builder or HtmlTreeBuilder()

    def convert(self, html: str) -> str:
        """转换HTML并返回JSON字符串"""
        return json.dumps(self.convert_tree(html), ensure_ascii=False)

    def convert_tree(self, html: str) -> Node:
        if not html or not html.strip():
            return copy.deepcopy(EMPTY_DOCUMENT)

        try:
            return self.builder.build(html)
        except Exception as e:
            logger.warning(f"HTML转换文档树失败，使用纯文本降级: {e}")
            return fallback_document(strip_tags(html))
