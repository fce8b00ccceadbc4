from pathlib import Path

from echodeck.application.config import resolve_config
from echodeck.application.factory import build_scheduler, get_store
from echodeck.infrastructure.storage import InMemoryStore, JsonFileStore


def test_defaults(mock_home):
    config = resolve_config()

    assert config.backend == "json"
    assert config.data_dir == mock_home / ".local/share/echodeck"
    assert config.port == 8000


def test_env_overrides_defaults(mock_home, monkeypatch):
    monkeypatch.setenv("ECHODECK_BACKEND", "memory")
    monkeypatch.setenv("ECHODECK_PORT", "9001")

    config = resolve_config()

    assert config.backend == "memory"
    assert config.port == 9001


def test_toml_file_is_read(mock_home, tmp_path):
    cfg_dir = mock_home / ".config/echodeck"
    cfg_dir.mkdir(parents=True)
    (cfg_dir / "config.toml").write_text(
        f'data_dir = "{(tmp_path / "from_toml").as_posix()}"\nport = 7000\n', encoding="utf-8"
    )

    config = resolve_config()

    assert config.data_dir == (tmp_path / "from_toml").resolve()
    assert config.port == 7000


def test_explicit_overrides_win(mock_home, monkeypatch, tmp_path):
    monkeypatch.setenv("ECHODECK_PORT", "9001")

    config = resolve_config({"port": 1234, "data_dir": tmp_path, "backend": None})

    assert config.port == 1234
    assert config.data_dir == tmp_path.resolve()
    assert config.backend == "json"


def test_data_dir_expands_user(mock_home):
    config = resolve_config({"data_dir": "~/decks"})
    assert config.data_dir == (mock_home / "decks").resolve()


def test_factory_selects_store(mock_home, tmp_path):
    assert isinstance(get_store(resolve_config({"backend": "memory"})), InMemoryStore)

    store = get_store(resolve_config({"data_dir": tmp_path}))
    assert isinstance(store, JsonFileStore)
    assert store.data_dir == Path(tmp_path).resolve()


def test_build_scheduler_from_config(mock_home, tmp_path, clock):
    scheduler = build_scheduler(resolve_config({"data_dir": tmp_path}), clock=clock)
    scheduler.get_or_create_card("gonna")

    assert (tmp_path / "cards.json").exists()
