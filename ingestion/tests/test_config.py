from pathlib import Path

import pytest

from ingestion.config_loader import CONFIG_PATH, load_dataset_spec
from ingestion.utils.config import ApiConfig, load_api_config


def test_bundled_tcga_config():
    spec = load_dataset_spec(CONFIG_PATH)
    assert spec.name == "TCGA GBM Pan-Can Atlas 2018"
    assert spec.data_dir == Path("example_data/gbm_tcga_pan_can_atlas_2018")
    assert [t.table_name for t in spec.tables] == ["patients", "samples"]
    patients, samples = spec.tables
    assert patients.file == "data_clinical_patient.txt"
    assert patients.primary_key == "PATIENT_ID"
    assert samples.primary_key == "SAMPLE_ID"
    assert all(t.skip_rows == 4 and t.delimiter == "\t" for t in spec.tables)


def test_missing_section(tmp_path: Path):
    path = tmp_path / "upload.yaml"
    path.write_text("DATASET:\n  name: x\n", encoding="utf-8")
    with pytest.raises(KeyError):
        load_dataset_spec(path)


def test_bad_skip_rows(tmp_path: Path):
    path = tmp_path / "upload.yaml"
    path.write_text(
        "DATASET:\n  name: x\nTABLES:\n  - file: a.txt\n    table_name: a\n    skip_rows: many\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError):
        load_dataset_spec(path)


def test_table_defaults(tmp_path: Path):
    path = tmp_path / "upload.yaml"
    path.write_text("DATASET:\n  name: x\nTABLES:\n  - file: a.txt\n    table_name: a\n", encoding="utf-8")
    table = load_dataset_spec(path).tables[0]
    assert table.display_name == "a"
    assert table.skip_rows == 0
    assert table.delimiter == "\t"
    assert table.primary_key is None


def test_api_config():
    assert load_api_config({}) == ApiConfig()
    cfg = load_api_config({"BIAI_API_URL": "http://api:5001/api/", "BIAI_UI_URL": "http://ui/", "BIAI_API_TIMEOUT": "10"})
    assert cfg.base_url == "http://api:5001/api"
    assert cfg.timeout == 10.0
    assert cfg.dataset_view_url("abc") == "http://ui/datasets/abc"
    with pytest.raises(ValueError):
        load_api_config({"BIAI_API_TIMEOUT": "soon"})
