import yaml

from dpictl import configuration


def test_nothing_saved(config_file):
    assert configuration.selected_device() is None
    assert configuration.last_dpi("0003:046D:C08B:bb") is None
    assert not config_file.exists()


def test_select_device_is_saved(config_file):
    configuration.select_device("0003:046D:C08B:bb")

    assert configuration.selected_device() == "0003:046D:C08B:bb"
    saved = yaml.safe_load(config_file.read_text())
    assert saved["selected_device"] == "0003:046D:C08B:bb"
    assert saved["_version"] == configuration.__version__


def test_remember_dpi_per_device(config_file):
    configuration.remember_dpi("0003:046D:C08B:bb", 1600)
    configuration.remember_dpi("0005:046D:B034:aa", 800)

    assert configuration.last_dpi("0003:046D:C08B:bb") == 1600
    assert configuration.last_dpi("0005:046D:B034:aa") == 800
    saved = yaml.safe_load(config_file.read_text())
    assert saved["last_dpi"] == {"0003:046D:C08B:bb": 1600, "0005:046D:B034:aa": 800}


def test_load(config_file, monkeypatch):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("selected_device: '0005:046D:B034:aa'\nlast_dpi: {'0005:046D:B034:aa': 1200, bad: high}\n")

    assert configuration.selected_device() == "0005:046D:B034:aa"
    assert configuration.last_dpi("0005:046D:B034:aa") == 1200
    assert configuration.last_dpi("bad") is None


def test_load_garbage(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("{unbalanced: [")

    assert configuration.selected_device() is None


def test_unselect(config_file):
    configuration.select_device("0003:046D:C08B:bb")

    configuration.select_device(None)

    assert configuration.selected_device() is None
    assert "selected_device" not in yaml.safe_load(config_file.read_text())
