"""解析器基类"""
from abc import ABC, abstractmethod
from typing import List

from ..exceptions import SizeLimitExceeded
from ..models import ParsedNote, SourceFile

class BaseParser(ABC):
    """解析器基类"""
    
    def __init__(self, source: SourceFile):
        self.source = source
        self._validate_source()
    
    def _validate_source(self) -> None:
        """验证源文件大小"""
        if len(self.source.data) > self.source.size_limit:
            raise SizeLimitExceeded(
                f"文件超过大小上限 ({self.source.size_limit} 字节): {self.source.filename}"
            )
    
    @abstractmethod
    def parse(self) -> List[ParsedNote]:
        """解析文件"""
        pass
