"""表格处理模块"""
import re

from ..utils.logger import get_logger

logger = get_logger()

# 单元格（td/th）及其内容，非贪婪
_CELL_RE = re.compile(r'(<t[dh]\b[^>]*>)([\s\S]*?)(</t[dh]>)', re.I)
_TD_RE = re.compile(r'<td>([\s\S]*?)</td>', re.I)
_BLOCK_START_RE = re.compile(r'^<(p|h[1-6]|ul|ol|blockquote|pre)[\s>]', re.I)
_BR_RE = re.compile(r'<br\s*/?>', re.I)

_DIV_OPEN_RE = re.compile(r'<div\b[^>]*>', re.I)
_DIV_CLOSE_RE = re.compile(r'</div>', re.I)

# (模式, 替换) 依次执行
_STRUCTURE_RULES = [
    (re.compile(r'<table\b[^>]*>', re.I), '<table>'),
    (re.compile(r'</?tbody\b[^>]*>', re.I), ''),
    (re.compile(r'</?thead\b[^>]*>', re.I), ''),
    (re.compile(r'<tr\b[^>]*>', re.I), '<tr>'),
    (re.compile(r'<td\b[^>]*>', re.I), '<td>'),
    (re.compile(r'<th\b[^>]*>', re.I), '<td>'),
    (re.compile(r'</th>', re.I), '</td>'),
    (re.compile(r'<colgroup\b[^>]*>[\s\S]*?</colgroup>', re.I), ''),
    (re.compile(r'<col\b[^>]*/?>', re.I), ''),
]

_TABLE_OPEN_RE = re.compile(r'<table>', re.I)
_TABLE_CLOSE_RE = re.compile(r'</table>', re.I)


class TableHandler:
    """
    表格处理器

    在 HTML 文本层面规范表格，保证每个单元格最终只包含块级节点：
    1. convert_cell_divs：单元格内的 div 边界变为 <br/>
    2. canonicalize：去掉表格属性、thead、colgroup，th 折叠为 td，补齐 tbody
    3. wrap_cell_blocks：非块级开头的单元格按 <br/> 拆分并包裹 <p>
    """

    def convert_cell_divs(self, html: str) -> str:
        """单元格内部：<div> 去掉，</div> 变为 <br/>"""
        def replace(match: re.Match) -> str:
            open_tag, inner, close_tag = match.groups()
            inner = _DIV_OPEN_RE.sub('', inner)
            inner = _DIV_CLOSE_RE.sub('<br/>', inner)
            return open_tag + inner + close_tag

        return _CELL_RE.sub(replace, html)

    def canonicalize(self, html: str) -> str:
        """规范表格结构"""
        for pattern, replacement in _STRUCTURE_RULES:
            html = pattern.sub(replacement, html)

        # thead 的行与 tbody 的行合并到唯一的 tbody 中
        html = _TABLE_OPEN_RE.sub('<table><tbody>', html)
        html = _TABLE_CLOSE_RE.sub('</tbody></table>', html)
        return html

    def wrap_cell_blocks(self, html: str) -> str:
        """保证单元格内容以块级标签开头"""
        def replace(match: re.Match) -> str:
            trimmed = match.group(1).strip()
            if _BLOCK_START_RE.match(trimmed):
                return f'<td>{trimmed}</td>'

            parts = [part.strip() for part in _BR_RE.split(trimmed) if part.strip()]
            if not parts:
                return '<td><p></p></td>'
            return '<td>' + ''.join(f'<p>{part}</p>' for part in parts) + '</td>'

        return _TD_RE.sub(replace, html)

