"""Tests for template import/export and the JSON template repository."""

import json
import logging

import pytest

from vaultclip.exceptions import ConfigError, TemplateImportError
from vaultclip.models import PropertyType, Template, TemplateBehavior
from vaultclip.storage import JsonTemplateRepository, export_template, import_template, import_templates

EXTERNAL_TEMPLATE = {
    "name": "Article",
    "behavior": "create",
    "noteNameFormat": "{{title|safe_name}}",
    "path": "Clippings",
    "noteContentFormat": "{{content}}",
    "properties": [
        {"name": "source", "value": "{{url}}", "type": "text"},
        {"name": "tags", "value": "clippings", "type": "multitext"},
    ],
    "triggers": ["https://example.com/"],
}


class TestImportTemplate:
    """Tests for import_template."""

    def test_missing_id_generated(self):
        """Test that a template without an id imports with a fresh one."""
        template = import_template(json.dumps(EXTERNAL_TEMPLATE))

        assert template.id
        assert template.name == "Article"
        assert template.note_name_format == "{{title|safe_name}}"
        assert template.path == "Clippings"
        assert template.properties[1].type == PropertyType.MULTITEXT
        assert template.triggers == ["https://example.com/"]

    def test_ids_unique(self):
        """Test that two imports of an id-less template get distinct ids."""
        assert import_template(EXTERNAL_TEMPLATE).id != import_template(EXTERNAL_TEMPLATE).id

    def test_blank_id_generated(self):
        """Test that an empty id is treated as missing."""
        assert import_template({**EXTERNAL_TEMPLATE, "id": ""}).id

    def test_existing_id_kept(self):
        """Test that a given id is stable."""
        assert import_template({**EXTERNAL_TEMPLATE, "id": "abc-123"}).id == "abc-123"

    def test_accepts_bytes(self):
        """Test JSON bytes input."""
        assert import_template(json.dumps(EXTERNAL_TEMPLATE).encode("utf-8")).name == "Article"

    @pytest.mark.parametrize(
        "behavior,expected",
        [
            ("append-specific", TemplateBehavior.APPEND_SPECIFIC),
            ("prepend-daily", TemplateBehavior.PREPEND_DAILY),
            ("appendDaily", TemplateBehavior.APPEND_DAILY),
            ("overwrite", TemplateBehavior.OVERWRITE),
        ],
    )
    def test_behaviors(self, behavior, expected):
        """Test the closed behavior set, including camelCase spellings."""
        assert import_template({**EXTERNAL_TEMPLATE, "behavior": behavior}).behavior == expected

    def test_unknown_behavior_rejected(self):
        """Test that a value outside the six behaviors is an import error."""
        with pytest.raises(TemplateImportError) as exc_info:
            import_template({**EXTERNAL_TEMPLATE, "behavior": "merge"})

        assert exc_info.value.name == "Article"
        assert "behavior" in str(exc_info.value)

    def test_missing_name_rejected(self):
        """Test that name is required."""
        record = {k: v for k, v in EXTERNAL_TEMPLATE.items() if k != "name"}

        with pytest.raises(TemplateImportError):
            import_template(record)

    def test_bad_property_rejected(self):
        """Test schema validation of properties."""
        record = {**EXTERNAL_TEMPLATE, "properties": [{"name": "", "value": "x"}]}

        with pytest.raises(TemplateImportError):
            import_template(record)

    def test_unknown_property_type_rejected(self):
        """Test that property types come from the closed set."""
        record = {**EXTERNAL_TEMPLATE, "properties": [{"name": "x", "value": "y", "type": "json"}]}

        with pytest.raises(TemplateImportError):
            import_template(record)

    def test_missing_property_type_is_text(self):
        """Test the property type default."""
        record = {**EXTERNAL_TEMPLATE, "properties": [{"name": "x", "value": "y", "type": None}]}

        assert import_template(record).properties[0].type == PropertyType.TEXT

    def test_invalid_json(self):
        """Test malformed JSON input."""
        with pytest.raises(TemplateImportError):
            import_template("{not json")

    def test_non_object(self):
        """Test that a JSON array is not a template."""
        with pytest.raises(TemplateImportError):
            import_template("[1, 2]")

    def test_unknown_keys_ignored(self):
        """Test forward compatibility with extra keys."""
        assert import_template({**EXTERNAL_TEMPLATE, "urlPatterns": ["x"]}).name == "Article"


class TestImportTemplates:
    """Tests for batch import."""

    def test_errors_reported_per_template(self, caplog):
        """Test that one bad template does not block the others."""
        records = [EXTERNAL_TEMPLATE, {"name": "Broken", "behavior": "nope"}, {**EXTERNAL_TEMPLATE, "name": "Second"}]

        with caplog.at_level(logging.WARNING, logger="vaultclip"):
            result = import_templates(json.dumps(records))

        assert [t.name for t in result.imported] == ["Article", "Second"]
        assert len(result.errors) == 1
        assert result.errors[0].name == "Broken"
        assert not result.ok
        assert "Skipping template #2" in caplog.text

    def test_single_object(self):
        """Test that a lone object is accepted."""
        result = import_templates(EXTERNAL_TEMPLATE)

        assert result.ok
        assert len(result.imported) == 1

    def test_invalid_json_raises(self):
        """Test that unparsable input fails as a whole."""
        with pytest.raises(TemplateImportError):
            import_templates(b"not json")


class TestExportTemplate:
    """Tests for export_template."""

    def test_camel_case_keys(self):
        """Test that export uses the interchange key names."""
        template = import_template({**EXTERNAL_TEMPLATE, "id": "t1", "behavior": "append-daily"})

        data = json.loads(export_template(template))

        assert data["id"] == "t1"
        assert data["noteNameFormat"] == "{{title|safe_name}}"
        assert data["noteContentFormat"] == "{{content}}"
        assert data["behavior"] == "append-daily"
        assert "vault" not in data

    def test_round_trip(self):
        """Test that an exported template imports unchanged."""
        template = import_template({**EXTERNAL_TEMPLATE, "vault": "Work", "context": "{{title}}"})

        assert import_template(export_template(template)) == template


class TestJsonTemplateRepository:
    """Tests for JsonTemplateRepository."""

    def test_missing_file_is_empty(self, tmp_path):
        """Test a repository that was never written."""
        repo = JsonTemplateRepository(tmp_path / "templates.json")

        assert repo.load() == []
        assert repo.default() is None

    def test_save_and_load(self, tmp_path):
        """Test persistence and stored order."""
        repo = JsonTemplateRepository(tmp_path / "nested" / "templates.json")
        first = Template(name="First")
        second = Template(name="Second")

        repo.save(first)
        repo.save(second)

        assert [t.name for t in repo.load()] == ["First", "Second"]
        assert repo.get(second.id) == second
        assert repo.get("nope") is None

    def test_save_replaces_same_id(self, tmp_path):
        """Test upsert by id."""
        repo = JsonTemplateRepository(tmp_path / "templates.json")
        template = Template(name="Original")
        repo.save(template)

        repo.save(template.model_copy(update={"name": "Renamed"}))

        assert [t.name for t in repo.load()] == ["Renamed"]

    def test_delete(self, tmp_path):
        """Test removal by id."""
        repo = JsonTemplateRepository(tmp_path / "templates.json")
        template = Template(name="Doomed")
        repo.save(template)

        assert repo.delete(template.id) is True
        assert repo.delete(template.id) is False
        assert repo.load() == []

    def test_default(self, tmp_path):
        """Test the default template lookup."""
        repo = JsonTemplateRepository(tmp_path / "templates.json")
        first, second = Template(name="First"), Template(name="Second")
        repo.save(first)
        repo.save(second)

        assert repo.default(second.id).name == "Second"
        assert repo.default("missing").name == "First"
        assert repo.default().name == "First"

    def test_corrupt_file_is_empty(self, tmp_path, caplog):
        """Test that a damaged store loads as empty with a warning."""
        path = tmp_path / "templates.json"
        path.write_text("{broken", encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="vaultclip"):
            templates = JsonTemplateRepository(path).load()

        assert templates == []
        assert "Could not load templates" in caplog.text

    def test_invalid_records_skipped(self, tmp_path):
        """Test that a bad stored record does not hide the good ones."""
        path = tmp_path / "templates.json"
        path.write_text(json.dumps([EXTERNAL_TEMPLATE, {"behavior": "create"}]), encoding="utf-8")

        assert [t.name for t in JsonTemplateRepository(path).load()] == ["Article"]

    def test_file_format(self, tmp_path):
        """Test that the store is a JSON list of interchange records."""
        path = tmp_path / "templates.json"
        JsonTemplateRepository(path).save(Template(name="T", note_content_format="{{content}}"))

        records = json.loads(path.read_text(encoding="utf-8"))

        assert isinstance(records, list)
        assert records[0]["noteContentFormat"] == "{{content}}"

    def test_invalid_records_survive_save(self, tmp_path):
        """Test that saving keeps stored records that fail validation."""
        path = tmp_path / "templates.json"
        broken = {"id": "b", "name": "Broken", "behavior": "merge"}
        path.write_text(json.dumps([{"id": "a", "name": "Kept"}, broken]), encoding="utf-8")
        repo = JsonTemplateRepository(path)

        repo.save(import_template({"id": "c", "name": "New"}))

        records = json.loads(path.read_text(encoding="utf-8"))
        assert [r["id"] for r in records] == ["a", "c", "b"]
        assert records[2] == broken

    def test_invalid_records_survive_delete(self, tmp_path):
        """Test that deleting keeps stored records that fail validation."""
        path = tmp_path / "templates.json"
        broken = {"id": "b", "name": "Broken", "behavior": "merge"}
        path.write_text(json.dumps([{"id": "a", "name": "Gone"}, broken]), encoding="utf-8")

        assert JsonTemplateRepository(path).delete("a") is True
        assert json.loads(path.read_text(encoding="utf-8")) == [broken]

    def test_corrupt_file_not_overwritten(self, tmp_path):
        """Test that writes to a damaged store fail and leave it untouched."""
        path = tmp_path / "templates.json"
        path.write_text("{broken", encoding="utf-8")
        repo = JsonTemplateRepository(path)

        with pytest.raises(ConfigError):
            repo.save(Template(name="New"))
        with pytest.raises(ConfigError):
            repo.delete("anything")

        assert path.read_text(encoding="utf-8") == "{broken"
