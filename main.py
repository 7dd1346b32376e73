import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

from importer import ImportService, InMemoryNoteStore, ImporterError, setup_logger, get_logger

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="导入 ENEX / OneNote (MHT、MHTML、HTML、ZIP) 笔记并转换为文档树。")
    parser.add_argument('files', nargs='+', help='要导入的文件')
    parser.add_argument('--user-id', default='local', help='导入到的用户')
    parser.add_argument('--notebook-id', default=None, help='目标笔记本 id')
    parser.add_argument('--vault', action='store_true', help='导入到保险库')
    parser.add_argument('--upload-dir', default='uploads', help='附件保存目录')
    parser.add_argument('--output', default=None, help='把创建的笔记导出为 JSON 文件')
    parser.add_argument('--verbose', action='store_true', help='输出调试日志')
    parser.add_argument('--log-file', default=None, help='日志文件')
    args = parser.parse_args(argv)

    setup_logger(level='DEBUG' if args.verbose else None, log_file=args.log_file, force=True)
    logger = get_logger()

    store = InMemoryNoteStore()
    service = ImportService(store, upload_dir=args.upload_dir)

    exit_code = 0
    for file_name in args.files:
        path = Path(file_name)
        try:
            result = service.import_file(
                path.read_bytes(), path.name, args.user_id,
                notebook_id=args.notebook_id, is_vault=args.vault,
            )
        except (ImporterError, OSError) as e:
            logger.error(f"导入失败 {path}: {e}")
            exit_code = 1
            continue
        print(json.dumps({'file': path.name, **result.to_dict()}, ensure_ascii=False))

    if args.output:
        notes = [asdict(note) for note in store.notes_for(args.user_id)]
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump(notes, f, ensure_ascii=False, indent=2, default=str)
        logger.info(f"已保存 {len(notes)} 个笔记: {args.output}")

    return exit_code

if __name__ == '__main__':
    sys.exit(main())
