"""导入服务"""
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from .config import Config
from .exceptions import InvalidFormatError, PerNoteImportError
from .models import ImportResult, Note, Notebook, ParsedNote, SourceFile, StoredResource
from .parsers.enex_parser import EnexParser
from .parsers.onenote_parser import OneNoteParser
from .pipeline import EnexPipeline, NotePipeline, OneNotePipeline
from .store import NoteStore
from .utils.logger import get_logger
from .writers.resource_writer import ResourceWriter

logger = get_logger()

class ImportService:
    """
    单个上传文件的导入入口

    格式级错误（超过大小上限、格式无效）直接抛出；单条笔记失败只记录日志，
    不计入 imported_count，批次继续。
    """

    def __init__(self, store: NoteStore,
                 upload_dir: Union[str, Path, None] = None,
                 url_prefix: Optional[str] = None):
        self.store = store
        self.writer = ResourceWriter(upload_dir, url_prefix)
        self.enex_pipeline = EnexPipeline(self.writer)
        self.onenote_pipeline = OneNotePipeline(self.writer)

    def import_file(self, data: bytes, filename: str, user_id: str,
                    notebook_id: Optional[str] = None, is_vault: bool = False) -> ImportResult:
        """按扩展名选择导入器"""
        if filename.lower().endswith('.enex'):
            return self.import_from_enex(data, user_id, notebook_id, is_vault, filename=filename)
        return self.import_from_onenote(data, filename, user_id, notebook_id, is_vault)

    def import_from_enex(self, data: bytes, user_id: str,
                         notebook_id: Optional[str] = None, is_vault: bool = False,
                         filename: str = 'import.enex') -> ImportResult:
        """导入ENEX文件"""
        logger.info(f"开始导入ENEX: {filename} ({len(data)} 字节)")
        notes = EnexParser(SourceFile(data, filename, Config.ENEX_MAX_SIZE)).parse()
        return self._import_notes(notes, self.enex_pipeline, user_id, notebook_id, is_vault)

    def import_from_onenote(self, data: bytes, filename: str, user_id: str,
                            notebook_id: Optional[str] = None, is_vault: bool = False) -> ImportResult:
        """导入OneNote导出文件（.mht/.mhtml/.html/.htm/.zip）"""
        logger.info(f"开始导入OneNote: {filename} ({len(data)} 字节)")
        notes = OneNoteParser(SourceFile(data, filename, Config.ONENOTE_MAX_SIZE)).parse()
        return self._import_notes(notes, self.onenote_pipeline, user_id, notebook_id, is_vault)

    def _import_notes(self, notes: List[ParsedNote], pipeline: NotePipeline, user_id: str,
                      notebook_id: Optional[str], is_vault: bool) -> ImportResult:
        result = ImportResult(total_found=len(notes))
        notebook: Optional[Notebook] = None

        for parsed in notes:
            try:
                notebook = self._import_isolated(parsed, pipeline, notebook, user_id, notebook_id, is_vault)
            except PerNoteImportError as e:
                logger.error(f"导入笔记失败: {e}", exc_info=True)
                continue
            result.imported_count += 1

        logger.info(f"导入完成: {result.imported_count}/{result.total_found}")
        return result

    def _import_isolated(self, parsed: ParsedNote, pipeline: NotePipeline,
                         notebook: Optional[Notebook], user_id: str,
                         notebook_id: Optional[str], is_vault: bool) -> Notebook:
        """导入单条笔记，任何失败都包装为 PerNoteImportError 并清理已写入的附件"""
        title = parsed.title or Config.UNTITLED_TITLE
        attachments: List[StoredResource] = []
        try:
            if parsed.error:
                raise InvalidFormatError(parsed.error)
            # 笔记本在第一条笔记时解析，成功后整批复用
            if notebook is None:
                notebook = self._resolve_notebook(user_id, notebook_id)
            self._import_note(parsed, title, pipeline, notebook, user_id, is_vault, attachments)
        except Exception as e:
            self.writer.discard_all(attachments)
            raise PerNoteImportError(title, str(e)) from e
        return notebook

    def _import_note(self, parsed: ParsedNote, title: str, pipeline: NotePipeline,
                     notebook: Notebook, user_id: str, is_vault: bool,
                     attachments: List[StoredResource]) -> Note:
        tag_ids = []
        for name in parsed.tags:
            tag = self.store.find_or_create_tag(user_id, name, is_vault)
            if tag.id not in tag_ids:
                tag_ids.append(tag.id)

        converted = pipeline.run(parsed, attachments)

        now = datetime.now(timezone.utc)
        note = Note(
            id=str(uuid.uuid4()),
            user_id=user_id,
            notebook_id=notebook.id,
            title=title,
            content=converted.content,
            search_text=converted.search_text,
            created_at=parsed.created or now,
            updated_at=parsed.updated or now,
            is_vault=is_vault,
            characters=converted.stats.characters,
            lines=converted.stats.lines,
            tag_ids=tag_ids,
            attachments=list(attachments),
        )
        created = self.store.create_note(note)
        logger.debug(f"已创建笔记: {title} ({created.id})")
        return created

    def _resolve_notebook(self, user_id: str, notebook_id: Optional[str]) -> Notebook:
        """显式指定且属于用户 -> 已有的 Imports -> 用户第一个笔记本 -> 新建 Imports"""
        if notebook_id:
            notebook = self.store.find_notebook(user_id, notebook_id=notebook_id)
            if notebook is not None:
                return notebook
            logger.warning(f"笔记本不存在或不属于该用户，忽略: {notebook_id}")

        notebook = (self.store.find_notebook(user_id, name=Config.IMPORTS_NOTEBOOK_NAME)
                    or self.store.find_notebook(user_id))
        if notebook is not None:
            return notebook
        return self.store.create_notebook(user_id, Config.IMPORTS_NOTEBOOK_NAME)
