"""单条笔记的转换流水线：规范化 -> 资源解析 -> 文档树 -> 搜索文本/统计"""
from dataclasses import dataclass
from typing import List, Type

from .config import Config
from .models import ParsedNote, StoredResource
from .processors.html_normalizer import EnexNormalizer, HtmlNormalizer, OneNoteNormalizer, Resolver
from .processors.resource_resolver import ResourceResolver
from .processors.text_extractor import DocumentStats, count_document_stats, extract_text_from_tiptap_json
from .processors.tree_converter import HtmlTreeBuilder, TreeConverter
from .utils.logger import get_logger
from .writers.resource_writer import ResourceWriter

logger = get_logger()

@dataclass
class ConvertedNote:
    """转换结果"""
    content: str
    search_text: str
    stats: DocumentStats

class NotePipeline:
    """
    流水线基类

    子类决定使用的规范化器、段落行高以及资源解析方式。
    写入的附件追加到调用方传入的列表中，失败时由调用方清理。
    """

    normalizer_class: Type[HtmlNormalizer] = HtmlNormalizer
    line_height: str = Config.DEFAULT_LINE_HEIGHT

    def __init__(self, writer: ResourceWriter):
        self.resolver = ResourceResolver(writer)
        self.normalizer = self.normalizer_class()
        self.converter = TreeConverter(HtmlTreeBuilder(self.line_height))

    def run(self, note: ParsedNote, attachments: List[StoredResource]) -> ConvertedNote:
        html = self.normalizer.normalize(note.content, self.make_resolver(note, attachments))
        content = self.converter.convert(html)
        converted = ConvertedNote(
            content=content,
            search_text=extract_text_from_tiptap_json(content),
            stats=count_document_stats(content),
        )
        logger.debug(
            f"已转换: {note.title} (附件 {len(attachments)}, "
            f"字符 {converted.stats.characters}, 行 {converted.stats.lines})"
        )
        return converted

    def make_resolver(self, note: ParsedNote, attachments: List[StoredResource]) -> Resolver:
        return lambda content: content

class EnexPipeline(NotePipeline):
    """ENEX：先写入全部资源，再按 MD5 替换 en-media"""

    normalizer_class = EnexNormalizer

    def make_resolver(self, note: ParsedNote, attachments: List[StoredResource]) -> Resolver:
        stored_by_hash = self.resolver.store_enex_resources(note.resources, attachments)
        return lambda content: self.resolver.resolve_en_media(content, stored_by_hash)

class OneNotePipeline(NotePipeline):
    """OneNote：data URI 图片，以及 MHT/ZIP 中按路径引用的图片"""

    normalizer_class = OneNoteNormalizer
    line_height = Config.ONENOTE_LINE_HEIGHT

    def make_resolver(self, note: ParsedNote, attachments: List[StoredResource]) -> Resolver:
        def resolve(content: str) -> str:
            content = self.resolver.resolve_data_uris(content, attachments)
            if note.resource_map is not None:
                content = self.resolver.resolve_paths(content, note.resource_map, attachments)
            return content

        return resolve
