"""写入器基类"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Union

from ..models import StoredResource

class BaseWriter(ABC):
    """资源写入器基类"""
    
    def __init__(self, output: Union[str, Path]):
        self.output = Path(output)
        self._prepare_output()
    
    def _prepare_output(self) -> None:
        """准备输出目录"""
        self.output.mkdir(parents=True, exist_ok=True)
    
    @abstractmethod
    def write(self, data: bytes, mime: str, display_name: str, storage_key: str) -> StoredResource:
        """持久化单个资源"""
        pass
    
    @abstractmethod
    def discard(self, stored: StoredResource) -> None:
        """删除已写入的资源"""
        pass
    
    def discard_all(self, resources: Iterable[StoredResource]) -> None:
        """删除多个资源"""
        for stored in resources:
            self.discard(stored)
