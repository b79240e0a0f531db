import json
from pathlib import Path

from ingestion.metadata import (
    build_dataset_payload,
    build_table_fields,
    extract_custom_metadata,
    normalize_delimiter,
    parse_metadata_file,
    parse_metadata_text,
    parse_relationships,
    parse_value,
)

DATASET_META = """\
# TCGA GBM
name: TCGA GBM Pan-Can Atlas 2018
description: Glioblastoma clinical data
tags: cancer, gbm, tcga
version: 2
score: 0.75
public: true
references:
  - https://www.cbioportal.org
  - PMID 29625048
contact:
  team: genomics
  email: data@example.org
organism: human
"""


def test_parse_value():
    assert parse_value("true") is True
    assert parse_value("FALSE") is False
    assert parse_value("42") == 42
    assert parse_value("3.14") == 3.14
    assert parse_value("-1") == "-1"
    assert parse_value("a, b", key="tags") == ["a", "b"]
    assert parse_value("a, b", key="name") == "a, b"


def test_parse_metadata_text_structures():
    meta = parse_metadata_text(DATASET_META)
    assert meta["name"] == "TCGA GBM Pan-Can Atlas 2018"
    assert meta["tags"] == ["cancer", "gbm", "tcga"]
    assert meta["version"] == 2
    assert meta["score"] == 0.75
    assert meta["public"] is True
    assert meta["references"] == ["https://www.cbioportal.org", "PMID 29625048"]
    assert meta["contact"] == {"team": "genomics", "email": "data@example.org"}
    assert meta["organism"] == "human"


def test_parse_nested_relationship_block():
    meta = parse_metadata_text(
        "table_name: samples\n"
        "relationship:\n"
        "  foreign_key: patient_id\n"
        "  references_table: patients\n"
        "  references_column: patient_id\n"
    )
    assert meta["relationship"] == {
        "foreign_key": "patient_id",
        "references_table": "patients",
        "references_column": "patient_id",
    }


def test_missing_file_is_empty(tmp_path: Path):
    assert parse_metadata_file(tmp_path / "absent.meta") == {}


def test_relationships_nested_with_default_type():
    result = parse_relationships(
        {"relationship": {"foreign_key": "user_id", "references_table": "users", "references_column": "id"}}
    )
    assert result == [
        {"foreign_key": "user_id", "referenced_table": "users", "referenced_column": "id", "type": "many-to-one"}
    ]


def test_relationships_incomplete_nested_is_skipped():
    assert parse_relationships({"relationship": {"foreign_key": "user_id"}}) == []


def test_relationships_legacy_formats():
    with_parens = parse_relationships({"foreign_key": "(patient_id)", "references": "patients(patient_id)"})
    simple = parse_relationships({"foreign_key": "patient_id", "references": "patients(id)"})
    assert with_parens == [
        {"foreign_key": "patient_id", "referenced_table": "patients", "referenced_column": "patient_id", "type": "many-to-one"}
    ]
    assert simple[0]["foreign_key"] == "patient_id"
    assert simple[0]["referenced_column"] == "id"


def test_relationships_combined_formats():
    result = parse_relationships(
        {
            "relationship": {"foreign_key": "patient_id", "references_table": "patients", "references_column": "id"},
            "relationships": [
                {"foreign_key": "doctor_id", "referenced_table": "doctors", "referenced_column": "id", "type": "many-to-one"}
            ],
        }
    )
    assert [r["foreign_key"] for r in result] == ["patient_id", "doctor_id"]
    assert parse_relationships({"table_name": "patients", "primary_key": "id"}) == []


def test_custom_metadata_and_delimiters():
    assert extract_custom_metadata({"name": "x", "organ": "brain"}, ["name"]) == {"organ": "brain"}
    assert normalize_delimiter("tab") == "\t"
    assert normalize_delimiter("Comma") == ","
    assert normalize_delimiter(None) == "\t"
    assert normalize_delimiter(";") == ";"


def test_dataset_payload_defaults(tmp_path: Path):
    payload = build_dataset_payload({"tags": "single", "organ": "brain"}, tmp_path / "my_study")
    assert payload["name"] == "my_study"
    assert payload["tags"] == ["single"]
    assert payload["references"] == []
    assert payload["customMetadata"] == {"organ": "brain"}


def test_table_fields():
    fields = build_table_fields(
        {
            "data_file": "data_clinical_sample.txt",
            "table_name": "samples",
            "skip_rows": 4,
            "delimiter": "tab",
            "primary_key": "SAMPLE_ID",
            "foreign_key": "PATIENT_ID",
            "references": "patients(PATIENT_ID)",
            "column_display_name_row": 0,
            "organ": "brain",
        },
        "data_clinical_sample.txt",
    )
    assert fields["tableName"] == "samples"
    assert fields["displayName"] == "samples"
    assert fields["skipRows"] == "4"
    assert fields["delimiter"] == "\t"
    assert fields["primaryKey"] == "SAMPLE_ID"
    assert json.loads(fields["customMetadata"]) == {"column_display_name_row": 0, "organ": "brain"}
    assert json.loads(fields["relationships"])[0]["referenced_table"] == "patients"
    assert json.loads(fields["columnMetadataConfig"]) == {"displayNameRow": 0}


def test_table_fields_fallbacks():
    fields = build_table_fields({}, "data_mutations.tsv")
    assert fields["tableName"] == "data_mutations"
    assert fields["displayName"] == "data_mutations.tsv"
    assert fields["skipRows"] == "0"
    assert "relationships" not in fields
    assert "columnMetadataConfig" not in fields
