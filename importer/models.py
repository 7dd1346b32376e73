"""数据模型"""
import binascii
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .exceptions import ResourceWriteError
from .utils.decoders import decode_base64
from .utils.helpers import calculate_hash

@dataclass
class SourceFile:
    """上传的源文件（仅在一次导入调用期间存在）"""
    data: bytes
    filename: str
    size_limit: int

    @property
    def extension(self) -> str:
        """小写扩展名（含点）"""
        name = self.filename.lower()
        return name[name.rfind('.'):] if '.' in name else ''

@dataclass
class ResourceEntry:
    """按地址键索引的资源（MHT 的 Content-Location，或 ZIP 条目路径）"""
    key: str
    mime: str
    data: bytes

@dataclass
class EnexResource:
    """ENEX 中内嵌的 base64 资源，在处理所属笔记时才解码"""
    data_b64: str
    mime: str
    file_name: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    _data: Optional[bytes] = field(default=None, repr=False)

    @property
    def data(self) -> bytes:
        """解码后的字节，损坏的 base64 抛出 ResourceWriteError"""
        if self._data is None:
            try:
                self._data = decode_base64(self.data_b64)
            except (binascii.Error, ValueError) as e:
                raise ResourceWriteError(f"资源 base64 数据损坏: {e}") from e
        return self._data

    @property
    def md5(self) -> str:
        """解码后字节的 MD5（en-media 引用使用的地址）"""
        return calculate_hash(self.data)

@dataclass
class ParsedNote:
    """源文件中发现的一条笔记"""
    title: str
    content: str
    source: str  # 'enex' 或 'onenote'
    tags: List[str] = field(default_factory=list)
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    resources: List[EnexResource] = field(default_factory=list)
    resource_map: Optional[Dict[str, ResourceEntry]] = None
    # 条目无法读取时的原因，导入时该笔记按失败计
    error: Optional[str] = None

    def add_resource(self, resource: EnexResource) -> None:
        """添加资源"""
        self.resources.append(resource)

    def add_tag(self, tag: str) -> None:
        """添加标签"""
        if tag and tag not in self.tags:
            self.tags.append(tag)

@dataclass
class StoredResource:
    """已持久化的附件"""
    storage_key: str
    url: str
    mime_type: str
    size: int
    filename: str
    width: Optional[int] = None
    height: Optional[int] = None

@dataclass
class Notebook:
    id: str
    user_id: str
    name: str

@dataclass
class Tag:
    id: str
    user_id: str
    name: str
    is_vault: bool = False

@dataclass
class Note:
    """待创建（或已创建）的笔记"""
    id: str
    user_id: str
    notebook_id: str
    title: str
    content: str
    search_text: str
    created_at: datetime
    updated_at: datetime
    is_vault: bool = False
    characters: int = 0
    lines: int = 0
    tag_ids: List[str] = field(default_factory=list)
    attachments: List[StoredResource] = field(default_factory=list)

@dataclass
class ImportResult:
    """一次导入的结果"""
    imported_count: int = 0
    total_found: int = 0

    def to_dict(self) -> dict:
        return {'importedCount': self.imported_count, 'totalFound': self.total_found}
