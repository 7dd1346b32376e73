"""旧版笔记导入与规范化"""
from .config import Config
from .exceptions import (
    ImporterError, SizeLimitExceeded, InvalidFormatError,
    ConversionError, ResourceWriteError, PerNoteImportError,
)
from .models import ImportResult, Note
from .processors.text_extractor import count_document_stats, extract_text_from_tiptap_json
from .service import ImportService
from .store import InMemoryNoteStore, NoteStore
from .utils.logger import setup_logger, get_logger

# 初始化日志
setup_logger()

__all__ = [
    'ImportService', 'NoteStore', 'InMemoryNoteStore',
    'ImportResult', 'Note', 'Config',
    'extract_text_from_tiptap_json', 'count_document_stats',
    'ImporterError', 'SizeLimitExceeded', 'InvalidFormatError',
    'ConversionError', 'ResourceWriteError', 'PerNoteImportError',
    'setup_logger', 'get_logger',
]
