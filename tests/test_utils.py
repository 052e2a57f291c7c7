import json
import logging

import pytest

from utils import (
    load_config, require_non_negative, require_ordered, require_positive,
    require_unit_interval, setup_logging
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_load_config_reads_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"simulation_parameters": {"seed": 3}}))
    assert load_config(str(path)) == {"simulation_parameters": {"seed": 3}}


def test_load_config_reraises_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.json"))
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    with pytest.raises(json.JSONDecodeError):
        load_config(str(broken))


def test_setup_logging_without_file(restore_root_logger):
    setup_logging({"logging": {"level": "debug", "log_file": None}})
    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1


def test_setup_logging_with_rotating_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "motion.log"
    setup_logging({"logging": {"log_file": str(log_file)}})
    assert len(restore_root_logger.handlers) == 2
    for handler in restore_root_logger.handlers:
        handler.flush()
    assert log_file.exists()
    for handler in restore_root_logger.handlers:
        handler.close()


def test_validators():
    assert require_positive("x", "2.5") == 2.5
    assert require_non_negative("x", 0) == 0.0
    assert require_unit_interval("x", 1.0) == 1.0
    assert require_ordered("x", 1, 2) == (1.0, 2.0)
    with pytest.raises(ValueError):
        require_positive("x", 0.0)
    with pytest.raises(ValueError):
        require_non_negative("x", float("inf"))
    with pytest.raises(ValueError):
        require_unit_interval("x", 1.0, closed=False)
    with pytest.raises(ValueError):
        require_ordered("x", 2, 1)
    with pytest.raises(ValueError):
        require_positive("x", None)
