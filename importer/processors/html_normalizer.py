"""HTML 规范化流水线"""
import re
from typing import Callable, List, Optional, Pattern, Sequence, Tuple

from .table_handler import TableHandler
from ..utils.logger import get_logger

logger = get_logger()

Resolver = Callable[[str], str]

_INTER_TAG_WS_RE = re.compile(r'>\s+<')
_DIV_OPEN_RE = re.compile(r'<div\b[^>]*>', re.I)
_DIV_CLOSE_RE = re.compile(r'</div>', re.I)


def collapse_whitespace(html: str) -> str:
    """删除标签之间的空白，必须在所有结构改写之后执行"""
    return _INTER_TAG_WS_RE.sub('><', html)


class HtmlNormalizer:
    """
    把任意/遗留 HTML 改写为满足文档树结构约束的 HTML

    阶段顺序固定，后面的阶段依赖前面阶段的输出形态：
    1. 去掉格式相关的外层样板
    2. 资源占位符解析（由调用方传入，必须早于属性/标签清理）
    3. 格式相关的内联控件转换
    4. 去掉展示属性和非语义包装标签
    5. div 转换（单元格内变 <br/>，其余变 <p>）
    6. 表格结构规范化
    7. 单元格内容块级包裹
    8. 折叠标签间空白
    """

    # 子类覆盖
    BOILERPLATE: Sequence[Pattern] = ()
    WIDGETS: Sequence[Tuple[Pattern, str]] = ()
    UNWRAP_TAGS: Sequence[str] = ('span', 'font', 'center', 'small', 'big')
    STRIP_ATTRIBUTES: Sequence[str] = ('style', 'class', 'rev')

    def __init__(self):
        self.table_handler = TableHandler()
        self._attribute_patterns = self._build_attribute_patterns(self.STRIP_ATTRIBUTES)
        self._unwrap_pattern = re.compile(
            r'</?(?:%s)\b[^>]*>' % '|'.join(re.escape(tag) for tag in self.UNWRAP_TAGS),
            re.I,
        )

    def normalize(self, html: str, resolve: Optional[Resolver] = None) -> str:
        """执行全部阶段并返回规范化后的 HTML"""
        content = self.strip_boilerplate(html or '')
        if resolve is not None:
            content = resolve(content)
        content = self.convert_widgets(content)
        content = self.strip_presentation(content)
        content = self.convert_divs(content)
        content = self.table_handler.canonicalize(content)
        content = self.table_handler.wrap_cell_blocks(content)
        content = collapse_whitespace(content)
        logger.debug(f"{type(self).__name__}: 规范化后 {len(content)} 字符")
        return content

    def strip_boilerplate(self, html: str) -> str:
        for pattern in self.BOILERPLATE:
            html = pattern.sub('', html)
        return html

    def convert_widgets(self, html: str) -> str:
        for pattern, replacement in self.WIDGETS:
            html = pattern.sub(replacement, html)
        return html

    def strip_presentation(self, html: str) -> str:
        """去掉 style/class/rev 属性与 span、font 等包装标签（保留内容）"""
        for pattern in self._attribute_patterns:
            html = pattern.sub('', html)
        return self._unwrap_pattern.sub('', html)

    def convert_divs(self, html: str) -> str:
        """单元格内的 div 先变 <br/>，剩下的 div 变 <p>"""
        html = self.table_handler.convert_cell_divs(html)
        html = _DIV_OPEN_RE.sub('<p>', html)
        return _DIV_CLOSE_RE.sub('</p>', html)

    @staticmethod
    def _build_attribute_patterns(names: Sequence[str]) -> List[Pattern]:
        patterns = []
        for name in names:
            patterns.append(re.compile(r'\s+%s="[^"]*"' % re.escape(name), re.I))
            patterns.append(re.compile(r"\s+%s='[^']*'" % re.escape(name), re.I))
        return patterns


class EnexNormalizer(HtmlNormalizer):
    """ENEX 笔记：去掉 XML 声明、DOCTYPE 与 en-note，en-todo 转为复选框"""

    BOILERPLATE = (
        re.compile(r'<\?xml.*?\?>', re.I),
        re.compile(r'<!DOCTYPE.*?>', re.I),
        re.compile(r'<en-note[^>]*>', re.I),
        re.compile(r'</en-note>', re.I),
    )
    WIDGETS = (
        (re.compile(r'<en-todo\s+checked="true"[^>]*/?>', re.I),
         '<input type="checkbox" checked disabled /> '),
        (re.compile(r'<en-todo[^>]*/?>', re.I), '<input type="checkbox" disabled /> '),
        (re.compile(r'</en-todo>', re.I), ''),
    )


class OneNoteNormalizer(HtmlNormalizer):
    """OneNote 页面：去掉 html/head/body/meta/link 外壳，并展开 o:p"""

    BOILERPLATE = (
        re.compile(r'<\?xml.*?\?>', re.I),
        re.compile(r'<!DOCTYPE[^>]*>', re.I),
        re.compile(r'<html[^>]*>', re.I),
        re.compile(r'</html>', re.I),
        re.compile(r'<head\b[^>]*>[\s\S]*?</head>', re.I),
        re.compile(r'<body[^>]*>', re.I),
        re.compile(r'</body>', re.I),
        re.compile(r'<meta[^>]*/?>', re.I),
        re.compile(r'<link[^>]*/?>', re.I),
    )
    UNWRAP_TAGS = ('span', 'font', 'center', 'small', 'big', 'o:p')
