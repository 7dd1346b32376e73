"""资源占位符解析"""
import binascii
import html
import re
import uuid
from typing import Dict, List, Optional

from ..exceptions import ResourceWriteError
from ..models import EnexResource, ResourceEntry, StoredResource
from ..utils.decoders import decode_base64
from ..utils.helpers import (
    basename, extension_of, image_mime_from_extension, mime_subtype,
    safe_unquote, sanitize_filename,
)
from ..utils.logger import get_logger
from ..writers.resource_writer import ResourceWriter

logger = get_logger()

_EN_MEDIA_RE = re.compile(r'<en-media[^>]*/?>', re.I)
_EN_MEDIA_CLOSE_RE = re.compile(r'</en-media>', re.I)
_HASH_ATTR_RE = re.compile(r'hash="([^"]+)"', re.I)
_DATA_URI_IMG_RE = re.compile(r'<img\s+[^>]*src="data:([^;]+);base64,([^"]+)"[^>]*/?>', re.I)
_PATH_IMG_RE = re.compile(r'<img\s+[^>]*src="([^"]+)"[^>]*/?>', re.I)

def _img_tag(stored: StoredResource) -> str:
    return f'<img src="{html.escape(stored.url)}" alt="{html.escape(stored.filename)}" />'

class ResourceResolver:
    """
    把资源引用改写为指向已持久化附件的 <img>/<a>

    三种寻址方式：
    - ENEX：<en-media hash="MD5">，按解码后字节的 MD5 匹配
    - 内联 data URI：立即解码并写入
    - MHT/ZIP 路径：按 原始路径 -> URL 解码路径 -> 文件名 的顺序查找
    """

    def __init__(self, writer: ResourceWriter):
        self.writer = writer

    @staticmethod
    def new_key(ext: str) -> str:
        return f"{uuid.uuid4()}.{ext}"

    def store_enex_resources(self, resources: List[EnexResource],
                             attachments: List[StoredResource]) -> Dict[str, StoredResource]:
        """写入ENEX笔记的全部资源，返回 MD5 -> 附件 映射"""
        stored_by_hash: Dict[str, StoredResource] = {}
        for resource in resources:
            data = resource.data
            display_name = resource.file_name or (
                f"attachment-{uuid.uuid4()}.{mime_subtype(resource.mime, 'bin')}"
            )
            storage_key = f"{uuid.uuid4()}-{sanitize_filename(display_name)}"
            stored = self.writer.write(data, resource.mime, display_name, storage_key,
                                       width=resource.width, height=resource.height)
            attachments.append(stored)
            stored_by_hash[resource.md5] = stored
        return stored_by_hash

    def resolve_en_media(self, content: str, stored_by_hash: Dict[str, StoredResource]) -> str:
        """替换 en-media 占位符，找不到资源时整体删除"""
        def replace(match: re.Match) -> str:
            hash_match = _HASH_ATTR_RE.search(match.group(0))
            if not hash_match:
                return ''

            stored = stored_by_hash.get(hash_match.group(1).lower())
            if stored is None:
                logger.warning(f"en-media 引用的资源不存在: {hash_match.group(1)}")
                return ''

            if stored.mime_type.startswith('image/'):
                return _img_tag(stored)
            return f'<a href="{html.escape(stored.url)}">{html.escape(stored.filename)}</a>'

        content = _EN_MEDIA_RE.sub(replace, content)
        return _EN_MEDIA_CLOSE_RE.sub('', content)

    def resolve_data_uris(self, content: str, attachments: List[StoredResource]) -> str:
        """解码并写入 data URI 图片，损坏的数据抛出 ResourceWriteError"""
        def replace(match: re.Match) -> str:
            mime, payload = match.group(1).strip(), match.group(2)
            try:
                data = decode_base64(payload)
            except (binascii.Error, ValueError) as e:
                raise ResourceWriteError(f"data URI 图片数据损坏: {e}") from e

            storage_key = self.new_key(mime_subtype(mime, 'png'))
            stored = self.writer.write(data, mime, storage_key, storage_key)
            attachments.append(stored)
            return _img_tag(stored)

        return _DATA_URI_IMG_RE.sub(replace, content)

    def resolve_paths(self, content: str, resource_map: Dict[str, ResourceEntry],
                      attachments: List[StoredResource]) -> str:
        """按路径查找 MHT/ZIP 资源，找不到时保留原标签"""
        def replace(match: re.Match) -> str:
            src = match.group(1)
            if self.writer.owns(src) or src.startswith(('http', 'data:')):
                return match.group(0)

            entry = self._lookup(resource_map, src)
            if entry is None:
                logger.warning(f"未找到图片资源，保留原地址: {src}")
                return match.group(0)

            ext = extension_of(src) or 'png'
            storage_key = self.new_key(ext)
            stored = self.writer.write(entry.data, image_mime_from_extension(ext),
                                       storage_key, storage_key)
            attachments.append(stored)
            return _img_tag(stored)

        return _PATH_IMG_RE.sub(replace, content)

    @staticmethod
    def _lookup(resource_map: Dict[str, ResourceEntry], src: str) -> Optional[ResourceEntry]:
        for key in (src, safe_unquote(src), basename(src)):
            entry = resource_map.get(key)
            if entry is not None:
                return entry
        return None
