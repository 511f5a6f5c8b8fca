import pytest

from distributions import CsvDistributionProvider, InMemoryDistributionProvider
from errors import ConfigurationError


def write_csv(path, rows):
    lines = ["year,return"] + [f"{year},{value}" for year, value in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def test_in_memory_lookup():
    provider = InMemoryDistributionProvider({"sp500": [0.1, 0.2]})
    assert provider.lookup("sp500") == (0.1, 0.2)
    assert provider.lookup("nikkei") is None
    assert "sp500" in provider
    assert provider.names() == ["sp500"]


def test_in_memory_provider_copies_input():
    source = {"sp500": [0.1]}
    provider = InMemoryDistributionProvider(source)
    source["sp500"].append(0.5)
    assert provider.lookup("sp500") == (0.1,)


def test_loads_csv_files_as_decimal_returns(tmp_path):
    write_csv(tmp_path / "sp500_dist.csv", [(1994, 1.31), (1995, 37.58), (1996, -5.0)])
    write_csv(tmp_path / "msci_world_dist.csv", [(1994, 5.08)])
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    provider = CsvDistributionProvider.from_directory(str(tmp_path))

    assert provider.names() == ["msci_world", "sp500"]
    assert provider.lookup("sp500") == pytest.approx((0.0131, 0.3758, -0.05))
    assert len(provider.lookup("msci_world")) == 1


def test_missing_directory(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        CsvDistributionProvider.from_directory(str(tmp_path / "nope"))


def test_non_numeric_returns(tmp_path):
    write_csv(tmp_path / "bad_dist.csv", [(1994, 1.0), (1995, "n/a")])
    with pytest.raises(ConfigurationError, match="non-numeric"):
        CsvDistributionProvider.from_directory(str(tmp_path))


def test_single_column_file(tmp_path):
    (tmp_path / "thin_dist.csv").write_text("return\n1.0\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="two columns"):
        CsvDistributionProvider.from_directory(str(tmp_path))
