"""ENEX格式解析器"""
from typing import List, Optional

import defusedxml.ElementTree as ET
from defusedxml import DefusedXmlException

from .base import BaseParser
from ..exceptions import InvalidFormatError
from ..models import EnexResource, ParsedNote
from ..utils.logger import get_logger
from ..utils.helpers import parse_timestamp
from ..config import Config

logger = get_logger()

class EnexParser(BaseParser):
    """
    ENEX文件解析器

    使用 defusedxml 解析，禁止实体展开。缺少 en-export/note 时整个文件无效；
    资源的 base64 数据保留到处理单个笔记时再解码，损坏的资源只影响所属笔记。
    """

    def parse(self) -> List[ParsedNote]:
        """解析ENEX文件并返回笔记列表"""
        try:
            root = ET.fromstring(self.source.data)
        except (ET.ParseError, DefusedXmlException) as e:
            logger.error(f"ENEX文件解析失败: {e}")
            raise InvalidFormatError(f"无效的ENEX文件: {e}") from e

        if root.tag != 'en-export':
            raise InvalidFormatError(f"无效的ENEX文件: 根元素为 <{root.tag}>")

        note_elems = root.findall('note')
        if not note_elems:
            raise InvalidFormatError("无效的ENEX文件: 缺少 en-export.note")

        notes = [self._parse_note(elem) for elem in note_elems]
        logger.info(f"成功解析 {len(notes)} 个笔记: {self.source.filename}")
        return notes

    def _parse_note(self, elem) -> ParsedNote:
        """解析单个笔记"""
        note = ParsedNote(
            title=(elem.findtext('title') or '').strip(),
            content=elem.findtext('content') or '',
            source='enex',
            created=parse_timestamp(elem.findtext('created')),
            updated=parse_timestamp(elem.findtext('updated')),
        )

        # 嵌套结构的 tag（非纯文本）直接跳过
        for tag_elem in elem.findall('tag'):
            if len(tag_elem) == 0 and tag_elem.text and tag_elem.text.strip():
                note.add_tag(tag_elem.text.strip())

        # 解析资源
        for res_elem in elem.findall('resource'):
            resource = self._parse_resource(res_elem)
            if resource:
                note.add_resource(resource)

        return note

    def _parse_resource(self, elem) -> Optional[EnexResource]:
        """解析资源（不解码）"""
        data_elem = elem.find('data')
        if data_elem is None or not data_elem.text or not data_elem.text.strip():
            return None

        attrs = elem.find('resource-attributes')
        filename = attrs.findtext('file-name') if attrs is not None else None

        return EnexResource(
            data_b64=data_elem.text,
            mime=(elem.findtext('mime') or '').strip() or Config.DEFAULT_MIME,
            file_name=filename.strip() if filename and filename.strip() else None,
            width=self._parse_int(elem.findtext('width')),
            height=self._parse_int(elem.findtext('height'))
        )

    @staticmethod
    def _parse_int(value: Optional[str]) -> Optional[int]:
        """安全解析整数"""
        try:
            return int(value) if value else None
        except ValueError:
            return None
