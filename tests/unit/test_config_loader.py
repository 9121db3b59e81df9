from pathlib import Path

import pytest
import yaml

from routebalance.config import (
    IOParams,
    OracleParams,
    RefinementParams,
    TargetParams,
    load_routebalance_params,
)
from routebalance.config.loader import default_config_path


def _write_yaml(tmp_path: Path, data: dict) -> Path:
    f = tmp_path / "routebalance.yaml"
    with open(f, "w") as fp:
        yaml.dump(data, fp)
    return f


@pytest.fixture(autouse=True)
def _no_credentials(monkeypatch):
    monkeypatch.delenv("NEXTBILLION_API_KEY", raising=False)
    monkeypatch.delenv("NEXTBILLION_API_URL", raising=False)


def test_default_config_loads():
    assert default_config_path().exists()
    params = load_routebalance_params()

    assert params.target.min_load == 12000
    assert params.refinement.max_iterations == 20
    assert params.oracle.backend == "nextbillion"
    assert params.oracle.poll_interval == 10
    assert params.oracle.max_wait == 600
    assert params.io.results_dir == (Path.cwd() / "output").resolve()
    assert params.io.format == "json"


def test_partial_yaml_uses_defaults(tmp_path):
    path = _write_yaml(tmp_path, {"target": {"min_load": 8000, "max_routes": 6}})
    params = load_routebalance_params(path)

    assert params.target == TargetParams(min_load=8000, max_routes=6)
    assert params.refinement == RefinementParams()
    constraints = params.target.constraint_set()
    assert constraints.active() == {"min_load_per_route": 8000, "max_routes": 6}


def test_unknown_top_level_key(tmp_path):
    path = _write_yaml(tmp_path, {"targets": {"min_load": 1}})
    with pytest.raises(ValueError, match="Unknown top-level configuration keys"):
        load_routebalance_params(path)


def test_unknown_section_key(tmp_path):
    path = _write_yaml(tmp_path, {"oracle": {"poll_intervall": 5}})
    with pytest.raises(ValueError, match="Unknown keys in 'oracle' section: poll_intervall"):
        load_routebalance_params(path)


def test_api_key_not_accepted_from_yaml(tmp_path):
    path = _write_yaml(tmp_path, {"oracle": {"api_key": "secret"}})
    with pytest.raises(ValueError, match="environment variable"):
        load_routebalance_params(path)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("target: [unclosed")
    with pytest.raises(ValueError, match="Error parsing YAML"):
        load_routebalance_params(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_routebalance_params(tmp_path / "absent.yaml")


def test_bad_vehicle_window(tmp_path):
    path = _write_yaml(tmp_path, {"refinement": {"default_vehicle_time_window": [5]}})
    with pytest.raises(ValueError, match="default_vehicle_time_window"):
        load_routebalance_params(path)


def test_environment_supplies_credentials(monkeypatch):
    monkeypatch.setenv("NEXTBILLION_API_KEY", "k-123")
    monkeypatch.setenv("NEXTBILLION_API_URL", "https://example.test")
    params = OracleParams()
    assert params.api_key == "k-123"
    assert params.base_url == "https://example.test"


@pytest.mark.parametrize("kwargs", [
    {"min_load": 0},
    {"min_load": 100, "max_load_per_route": 50},
])
def test_target_validation(kwargs):
    with pytest.raises(ValueError):
        TargetParams(**kwargs)


def test_refinement_validation():
    with pytest.raises(ValueError, match="max_iterations"):
        RefinementParams(max_iterations=0)
    with pytest.raises(ValueError, match="start must precede end"):
        RefinementParams(default_vehicle_time_window=(10, 10))


def test_io_format_validation():
    with pytest.raises(ValueError, match="IOParams.format"):
        IOParams(format="parquet")


def test_strategy_policy_from_refinement():
    policy = RefinementParams(
        default_vehicle_time_window=(100, 200), include_load_constraint=True
    ).strategy_policy()
    assert policy.default_time_window == (100, 200)
    assert policy.include_load_constraint
