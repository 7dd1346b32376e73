"""OneNote 导出文件解析器（MHT/MHTML、HTML、ZIP）"""
import io
import re
import zipfile
import zlib
from typing import Dict, List, Optional

from .base import BaseParser
from .mht_parser import parse_mht
from ..exceptions import InvalidFormatError
from ..models import ParsedNote, ResourceEntry
from ..utils.helpers import guess_mime, safe_unquote, stem_of
from ..utils.logger import get_logger

logger = get_logger()

HTML_EXTENSIONS = ('.html', '.htm')
MHT_EXTENSIONS = ('.mht', '.mhtml')
ZIP_EXTENSIONS = ('.zip',)

# 损坏、CRC 不符、加密或不支持的压缩方式
_ENTRY_ERRORS = (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, EOFError, OSError)

_TITLE_RE = re.compile(r'<title[^>]*>([\s\S]*?)</title>', re.I)

def _decode_text(data: bytes) -> str:
    return data.decode('utf-8', errors='replace')

def extract_title(html: str, fallback: str) -> str:
    """优先使用 <title> 标签的内容"""
    match = _TITLE_RE.search(html or '')
    if match and match.group(1).strip():
        return match.group(1).strip()
    return fallback

class OneNoteParser(BaseParser):
    """
    OneNote 导出解析器

    仅按扩展名（不区分大小写）分派：.zip 遍历条目，.mht/.mhtml 走 MIME 解析，
    .html/.htm 直接视为 HTML，其他扩展名抛出 InvalidFormatError。
    """

    def parse(self) -> List[ParsedNote]:
        """解析文件，每个 HTML/MHT 条目得到一条笔记"""
        ext = self.source.extension

        if ext in ZIP_EXTENSIONS:
            notes = self._parse_zip()
        elif ext in MHT_EXTENSIONS:
            notes = [self._mht_note(self.source.data, self.source.filename)]
        elif ext in HTML_EXTENSIONS:
            notes = [self._html_note(self.source.data, self.source.filename, None)]
        else:
            raise InvalidFormatError(
                f"不支持的文件格式: {self.source.filename}（仅支持 .mht、.mhtml、.html、.htm、.zip）"
            )

        logger.info(f"发现 {len(notes)} 个OneNote页面: {self.source.filename}")
        return notes

    def _parse_zip(self) -> List[ParsedNote]:
        """遍历ZIP：HTML/MHT 条目为笔记，其余条目为共享资源池"""
        try:
            archive = zipfile.ZipFile(io.BytesIO(self.source.data), 'r')
        except zipfile.BadZipFile as e:
            raise InvalidFormatError(f"无效的ZIP文件: {e}") from e

        notes: List[ParsedNote] = []
        # HTML 页面共享同一个资源池，解析完所有条目后才完整
        pool: Dict[str, ResourceEntry] = {}

        with archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue

                name = info.filename
                lower = name.lower()
                is_page = lower.endswith(HTML_EXTENSIONS + MHT_EXTENSIONS)
                try:
                    data = archive.read(info)
                except _ENTRY_ERRORS as e:
                    if is_page:
                        logger.warning(f"ZIP页面条目无法读取: {name} ({e})")
                        notes.append(self._unreadable_note(name, e))
                    else:
                        logger.warning(f"跳过无法读取的ZIP资源: {name} ({e})")
                    continue

                if lower.endswith(HTML_EXTENSIONS):
                    notes.append(self._html_note(data, name, pool))
                elif lower.endswith(MHT_EXTENSIONS):
                    notes.append(self._mht_note(data, name))
                else:
                    self._add_pool_entry(pool, name, data)

        logger.debug(f"ZIP资源池: {len(pool)} 个键")
        return notes

    @staticmethod
    def _add_pool_entry(pool: Dict[str, ResourceEntry], name: str, data: bytes) -> None:
        """以原始路径和 URL 解码后的路径同时登记"""
        mime = guess_mime(name)
        pool[name] = ResourceEntry(key=name, mime=mime, data=data)
        decoded = safe_unquote(name)
        if decoded != name:
            pool[decoded] = ResourceEntry(key=decoded, mime=mime, data=data)

    @staticmethod
    def _unreadable_note(name: str, error: Exception) -> ParsedNote:
        return ParsedNote(
            title=stem_of(name),
            content='',
            source='onenote',
            error=f"ZIP条目无法读取: {name} ({error})",
        )

    @staticmethod
    def _html_note(data: bytes, name: str,
                   pool: Optional[Dict[str, ResourceEntry]]) -> ParsedNote:
        html = _decode_text(data)
        return ParsedNote(
            title=extract_title(html, stem_of(name)),
            content=html,
            source='onenote',
            resource_map=pool,
        )

    @staticmethod
    def _mht_note(data: bytes, name: str) -> ParsedNote:
        document = parse_mht(_decode_text(data))
        return ParsedNote(
            title=extract_title(document.html, stem_of(name)),
            content=document.html,
            source='onenote',
            resource_map=document.resources,
        )
