import json
from pathlib import Path

import pytest

from landmark3d.config import (
    LMParams,
    TriangulationConfig,
    config_to_dict,
    load_triangulation_config,
    parse_triangulation_config,
)
from landmark3d.errors import ConfigValidationError


def test_defaults():
    cfg = parse_triangulation_config({})
    assert cfg == TriangulationConfig()
    assert cfg.rank_tol == 1e-9
    assert cfg.optimize is False
    assert cfg.check_cheirality is None
    assert cfg.lm == LMParams()


def test_parse_full_config():
    cfg = parse_triangulation_config(
        {
            "schema_version": "landmark3d.config.v0",
            "rank_tol": 1e-6,
            "optimize": True,
            "check_cheirality": True,
            "lm": {"method": "trf", "max_nfev": 20, "ftol": 1e-8, "xtol": 1e-8, "gtol": 1e-8},
        }
    )
    assert cfg.rank_tol == 1e-6
    assert cfg.optimize and cfg.check_cheirality
    assert cfg.lm.method == "trf"
    assert cfg.lm.max_nfev == 20


def test_config_dict_roundtrip(tmp_path: Path):
    cfg = TriangulationConfig(rank_tol=1e-7, optimize=True, lm=LMParams(max_nfev=7))
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_to_dict(cfg)), encoding="utf-8")
    assert load_triangulation_config(path) == cfg


@pytest.mark.parametrize(
    "data",
    [
        {"schema_version": "other"},
        {"rank_tol": -1.0},
        {"optimize": "yes"},
        {"check_cheirality": 1},
        {"lm": {"method": "dogbox"}},
        {"lm": {"max_nfev": 0}},
        {"lm": {"ftol": 0.0}},
    ],
)
def test_rejects_invalid_config(data):
    with pytest.raises(ConfigValidationError):
        parse_triangulation_config(data)
