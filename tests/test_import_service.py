"""导入服务端到端测试"""
import base64
import json
import re
from datetime import datetime, timezone

import pytest

from importer import ImportService, InMemoryNoteStore, InvalidFormatError, Note, SizeLimitExceeded
from importer.config import Config

from .samples import (
    USER_ID, damage_stored_entry, enex_document, enex_note, enex_resource, md5_hex, mht_document, png_bytes,
    zip_archive,
)

NOW = datetime(2024, 5, 6, tzinfo=timezone.utc)

def only_note(store):
    (note,) = store.notes_for(USER_ID)
    return note

def find_nodes(node, node_type):
    found = [node] if node.get('type') == node_type else []
    for child in node.get('content') or []:
        found.extend(find_nodes(child, node_type))
    return found

class TestEnexImport:
    def test_basic_note(self, service, store):
        data = enex_document(enex_note('Hello', '<div>First line</div><div><b>Second</b></div>', tags=['a', 'b']))

        result = service.import_from_enex(data, USER_ID)

        assert result.to_dict() == {'importedCount': 1, 'totalFound': 1}
        note = only_note(store)
        assert note.title == 'Hello'
        assert note.search_text == 'First line Second'
        assert (note.characters, note.lines) == (16, 2)
        assert note.created_at.isoformat() == '2024-01-02T03:04:05+00:00'
        assert [tag.name for tag in store.tags] == ['a', 'b']
        assert note.tag_ids == [tag.id for tag in store.tags]
        doc = json.loads(note.content)
        assert doc['type'] == 'doc'
        assert doc['content'][0]['attrs'] == {'lineHeight': Config.DEFAULT_LINE_HEIGHT}

    def test_en_media_points_at_identical_bytes(self, service, store, upload_dir):
        image = png_bytes(7, 3)
        pdf = b'%PDF-1.4 body'
        body = (
            f'<div><en-media hash="{md5_hex(image)}" type="image/png"/></div>'
            f'<div><en-media hash="{md5_hex(pdf)}" type="application/pdf"/></div>'
            '<div><en-media hash="ffffffffffffffffffffffffffffffff" type="image/png"/>gone</div>'
        )
        resources = [enex_resource(image, file_name='pic.png'), enex_resource(pdf, 'application/pdf', 'doc.pdf')]
        service.import_from_enex(enex_document(enex_note('Media', body, resources=resources)), USER_ID)

        note = only_note(store)
        doc = json.loads(note.content)
        (image_node,) = find_nodes(doc, 'image')
        src = image_node['attrs']['src']
        assert src.startswith('/uploads/')
        assert (upload_dir / src[len('/uploads/'):]).read_bytes() == image

        link_marks = [mark for node in find_nodes(doc, 'text') for mark in node.get('marks', [])
                      if mark['type'] == 'link']
        (link,) = link_marks
        assert (upload_dir / link['attrs']['href'][len('/uploads/'):]).read_bytes() == pdf

        assert [a.filename for a in note.attachments] == ['pic.png', 'doc.pdf']
        assert (note.attachments[0].width, note.attachments[0].height) == (7, 3)
        assert 'gone' in note.search_text

    def test_one_malformed_note_in_batch(self, service, store, upload_dir):
        notes = [enex_note(f'Note {i}', f'<div>body {i}</div>') for i in range(10)]
        broken_resources = [enex_resource(png_bytes(), file_name='ok.png'), enex_resource(b'', raw_b64='abc')]
        notes[4] = enex_note('Broken', '<div>x</div>', resources=broken_resources)

        result = service.import_from_enex(enex_document(*notes), USER_ID)

        assert (result.imported_count, result.total_found) == (9, 10)
        assert 'Broken' not in [note.title for note in store.notes_for(USER_ID)]
        # 失败笔记已写入的附件被清理
        assert list(upload_dir.iterdir()) == []

    def test_missing_note_rejected_before_processing(self, service, store):
        with pytest.raises(InvalidFormatError):
            service.import_from_enex(b'<?xml version="1.0"?><en-export></en-export>', USER_ID)
        assert store.notebooks == []

    def test_size_limit(self, service, monkeypatch):
        monkeypatch.setattr(Config, 'ENEX_MAX_SIZE', 10)
        with pytest.raises(SizeLimitExceeded):
            service.import_from_enex(enex_document(enex_note('x', '<p/>')), USER_ID)

    def test_untitled_and_empty(self, service, store):
        service.import_from_enex(enex_document(enex_note('', '')), USER_ID)
        note = only_note(store)
        assert note.title == Config.UNTITLED_TITLE
        assert json.loads(note.content) == {'type': 'doc', 'content': [{'type': 'paragraph'}]}
        assert (note.characters, note.lines) == (0, 0)

    def test_todos(self, service, store):
        body = '<div><en-todo checked="true"/>done</div><div><en-todo/>open</div>'
        service.import_from_enex(enex_document(enex_note('Todo', body)), USER_ID)
        assert only_note(store).search_text == '[x] done [ ] open'

    def test_tags_reused_and_scoped_by_vault(self, service, store):
        service.import_from_enex(enex_document(enex_note('One', '<p>1</p>', tags=['work'])), USER_ID)
        service.import_from_enex(enex_document(enex_note('Two', '<p>2</p>', tags=['work', 'Work'])), USER_ID)
        service.import_from_enex(enex_document(enex_note('Three', '<p>3</p>', tags=['work'])), USER_ID, is_vault=True)
        assert [(tag.name, tag.is_vault) for tag in store.tags] == [('work', False), ('Work', False), ('work', True)]

class TestNotebookResolution:
    def import_one(self, service, notebook_id=None):
        service.import_from_enex(enex_document(enex_note('N', '<p>n</p>')), USER_ID, notebook_id)

    def test_creates_imports_notebook(self, service, store):
        self.import_one(service)
        self.import_one(service)
        assert [nb.name for nb in store.notebooks] == ['Imports']
        assert {note.notebook_id for note in store.notes_for(USER_ID)} == {store.notebooks[0].id}

    def test_explicit_notebook(self, service, store):
        target = store.create_notebook(USER_ID, 'Target')
        self.import_one(service, target.id)
        assert only_note(store).notebook_id == target.id

    def test_foreign_notebook_ignored(self, service, store):
        foreign = store.create_notebook('someone-else', 'Theirs')
        own = store.create_notebook(USER_ID, 'Mine')
        self.import_one(service, foreign.id)
        assert only_note(store).notebook_id == own.id

    def test_prefers_existing_imports_notebook(self, service, store):
        store.create_notebook(USER_ID, 'First')
        imports = store.create_notebook(USER_ID, 'Imports')
        self.import_one(service)
        assert only_note(store).notebook_id == imports.id

class TestOneNoteImport:
    def test_html_with_data_uri(self, service, store, upload_dir):
        image = png_bytes()
        html = (
            '<html><head><title>Page</title></head><body>'
            f'<div style="x"><img src="data:image/png;base64,{base64.b64encode(image).decode()}"></div>'
            '<p>Text</p></body></html>'
        )
        result = service.import_from_onenote(html.encode('utf-8'), 'page.html', USER_ID)

        assert result.to_dict() == {'importedCount': 1, 'totalFound': 1}
        note = only_note(store)
        assert note.title == 'Page'
        doc = json.loads(note.content)
        (image_node,) = find_nodes(doc, 'image')
        assert (upload_dir / image_node['attrs']['src'].rsplit('/', 1)[1]).read_bytes() == image
        assert all(p['attrs'] == {'lineHeight': Config.ONENOTE_LINE_HEIGHT} for p in find_nodes(doc, 'paragraph'))

    def test_simple_quoted_printable_mht(self, service, store):
        raw = (
            'Content-Type: text/html\r\nContent-Transfer-Encoding: quoted-printable\r\n\r\n'
            '<p>Caf=C3=A9 au=\r\n lait</p>'
        ).encode('utf-8')
        service.import_from_onenote(raw, 'cafe.mht', USER_ID)
        note = only_note(store)
        assert note.title == 'cafe'
        assert note.search_text == 'Café au lait'

    def test_multipart_mht_images(self, service, store, upload_dir):
        image = png_bytes()
        data = mht_document(
            '<html><body><p><img src="page_files/image001.png"><img src="missing.png"></p></body></html>',
            {'file:///C:/export/page_files/image001.png': image},
        )
        service.import_from_onenote(data, 'page.mht', USER_ID)

        note = only_note(store)
        sources = [node['attrs']['src'] for node in find_nodes(json.loads(note.content), 'image')]
        assert sources[0].startswith('/uploads/')
        assert sources[1] == 'missing.png'
        assert len(note.attachments) == 1
        assert note.attachments[0].mime_type == 'image/png'

    def test_zip_export(self, service, store):
        image = png_bytes()
        data = zip_archive({
            'Notebook/Page A.html': b'<p><img src="images/a%20b.png"></p><table><tr><td>x</td><td><div>y</div></td></tr></table>',
            'Notebook/Page B.htm': b'<p>B</p>',
            'Notebook/images/a b.png': image,
            'images/a b.png': image,
        })

        result = service.import_file(data, 'export.zip', USER_ID)

        assert result.to_dict() == {'importedCount': 2, 'totalFound': 2}
        page_a = next(note for note in store.notes_for(USER_ID) if note.title == 'Page A')
        assert len(page_a.attachments) == 1
        doc = json.loads(page_a.content)
        for cell in find_nodes(doc, 'tableCell'):
            assert [child['type'] for child in cell['content']] == ['paragraph']
        assert page_a.lines == 2

    def test_unsupported_extension(self, service):
        with pytest.raises(InvalidFormatError):
            service.import_from_onenote(b'data', 'notes.docx', USER_ID)

    def test_conversion_failure_falls_back_to_text(self, service, store, monkeypatch):
        def broken(html):
            raise RuntimeError('boom')

        monkeypatch.setattr(service.onenote_pipeline.converter.builder, 'build', broken)
        service.import_from_onenote(b'<p>Plain <b>text</b></p>', 'page.html', USER_ID)
        note = only_note(store)
        assert json.loads(note.content) == {'type': 'doc', 'content': [
            {'type': 'paragraph', 'content': [{'type': 'text', 'text': 'Plain text'}]},
        ]}

class TestImportFile:
    def test_enex_dispatch(self, service, store):
        result = service.import_file(enex_document(enex_note('E', '<p>e</p>')), 'Export.ENEX', USER_ID)
        assert result.total_found == 1
        assert re.match(r'[0-9a-f-]{36}', only_note(store).id)

    def test_html_dispatch(self, service, store):
        service.import_file(b'<p>h</p>', 'h.htm', USER_ID, is_vault=True)
        assert only_note(store).is_vault is True

class TestBatchIsolation:
    def test_damaged_zip_page_counts_as_failed(self, service, store):
        data = damage_stored_entry(
            zip_archive({'a.html': b'<p>page a</p>', 'b.html': b'<p>page b</p>'}),
            b'<p>page b</p>',
        )

        result = service.import_file(data, 'export.zip', USER_ID)

        assert result.to_dict() == {'importedCount': 1, 'totalFound': 2}
        assert only_note(store).title == 'a'

    def test_existing_note_returned_by_store_counts_as_imported(self, upload_dir):
        class ExistingNoteStore(InMemoryNoteStore):
            def create_note(self, note):
                self.attempts.append(note.id)
                return existing

        store = ExistingNoteStore()
        store.attempts = []
        notebook = store.create_notebook(USER_ID, 'Imports')
        existing = Note(id='existing', user_id=USER_ID, notebook_id=notebook.id, title='Old', content='{}',
                        search_text='', created_at=NOW, updated_at=NOW)
        store.notes[existing.id] = existing

        result = ImportService(store, upload_dir=upload_dir).import_from_enex(
            enex_document(enex_note('One', '<p>1</p>'), enex_note('Two', '<p>2</p>')), USER_ID,
        )

        assert result.to_dict() == {'importedCount': 2, 'totalFound': 2}
        assert len(store.attempts) == 2
        assert list(store.notes) == ['existing']
