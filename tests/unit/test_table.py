from pathlib import Path

import numpy as np
import pytest
from scipy.integrate import quad

from sedlaunch.core.errors import ResourceError
from sedlaunch.core.resources import describe_table, write_stored_table, write_table_resource
from sedlaunch.core.table import AxisGrid, ResourceLocator, StoredTable, parse_axis_spec


def _table(quantity_interp: str = "log") -> StoredTable:
    rng = np.random.default_rng(1)
    lam = AxisGrid("lambda", "m", np.geomspace(1e-7, 1e-5, 12), "log")
    Z = AxisGrid("Z", "1", [0.001, 0.01, 0.02], "log")
    t = AxisGrid("t", "yr", [1e6, 1e7, 1e8, 1e9], "log")
    values = rng.uniform(0.5, 2.0, (12, 3, 4)) * (lam.grid[:, None, None] / 1e-6) ** -1.5
    return StoredTable([lam, Z, t], values, "Llambda", "W/m", quantity_interp, name="test")


def test_parse_axis_spec() -> None:
    assert parse_axis_spec("lambda(m),Z(1),n_cl(1/cm3)") == [("lambda", "m"), ("Z", "1"), ("n_cl", "1/cm3")]
    with pytest.raises(ValueError):
        parse_axis_spec("lambda(m),Z")


def test_axis_rejects_non_increasing_grid() -> None:
    with pytest.raises(ValueError):
        AxisGrid("t", "yr", [1.0, 1.0, 2.0])
    with pytest.raises(ValueError):
        AxisGrid("t", "yr", [])


def test_grid_nodes_return_stored_values() -> None:
    table = _table()
    lam, Z, t = (a.grid for a in table.axes)
    for i in (0, 5, 11):
        for j in range(len(Z)):
            for k in range(len(t)):
                assert table(lam[i], Z[j], t[k]) == pytest.approx(table.values[i, j, k], rel=1e-12)


def test_spectral_axis_outside_range_is_zero() -> None:
    table = _table()
    assert table(5e-8, 0.01, 1e7) == 0.0
    assert table(2e-5, 0.01, 1e7) == 0.0


def test_parameters_are_clamped() -> None:
    table = _table()
    lam = table.axes[0].grid[4]
    assert table(lam, 1e-6, 1e3) == pytest.approx(table(lam, 0.001, 1e6))
    assert table(lam, 1.0, 1e12) == pytest.approx(table(lam, 0.02, 1e9))


def test_log_values_interpolate_geometrically() -> None:
    lam = AxisGrid("lambda", "m", [1.0, 2.0])
    p = AxisGrid("p", "1", [0.0, 1.0])
    values = np.array([[1.0, 100.0], [1.0, 100.0]])
    assert StoredTable([lam, p], values, quantity_interp="log")(1.0, 0.5) == pytest.approx(10.0)
    assert StoredTable([lam, p], values, quantity_interp="lin")(1.0, 0.5) == pytest.approx(50.5)


def test_log_values_fall_back_to_linear_with_zeros() -> None:
    lam = AxisGrid("lambda", "m", [1.0, 2.0])
    p = AxisGrid("p", "1", [0.0, 1.0])
    values = np.array([[0.0, 2.0], [0.0, 2.0]])
    assert StoredTable([lam, p], values, quantity_interp="log")(1.5, 0.5) == pytest.approx(1.0)


def test_cdf_total_matches_quadrature() -> None:
    table = _table()
    params = (0.005, 3e7)
    rng = (1.3e-7, 7e-6)
    cdf = table.cdf(rng, *params)
    nodes = [x for x in table.axes[0].grid if rng[0] < x < rng[1]]
    expected, _ = quad(lambda x: table(x, *params), rng[0], rng[1], points=nodes, limit=200, epsrel=1e-10)
    assert cdf.total == pytest.approx(expected, rel=1e-6)
    assert cdf.wavelengths[0] == rng[0] and cdf.wavelengths[-1] == rng[1]


def test_cdf_total_matches_quadrature_linear() -> None:
    table = _table("lin")
    lam = table.axes[0]
    table = StoredTable(
        [AxisGrid(lam.name, lam.unit, lam.grid, "lin")] + list(table.axes[1:]),
        table.values, quantity_interp="lin",
    )
    params = (0.02, 1e6)
    rng = (2e-7, 9e-6)
    nodes = [x for x in lam.grid if rng[0] < x < rng[1]]
    expected, _ = quad(lambda x: table(x, *params), rng[0], rng[1], points=nodes, limit=200, epsrel=1e-10)
    assert table.cdf(rng, *params).total == pytest.approx(expected, rel=1e-6)


def test_cdf_is_monotone_and_ends_at_one() -> None:
    cdf = _table().cdf((1e-7, 1e-5), 0.01, 1e8)
    assert np.all(np.diff(cdf.cdf) >= 0.0)
    assert cdf.cdf[0] == 0.0
    assert cdf.cdf[-1] == 1.0


def test_cdf_of_disjoint_range_is_degenerate() -> None:
    table = _table()
    assert table.cdf((1e-4, 1e-3), 0.01, 1e8).degenerate
    assert table.cdf((1e-6, 1e-6), 0.01, 1e8).total == 0.0


def test_cdf_of_zero_table_is_degenerate() -> None:
    lam = AxisGrid("lambda", "m", [1.0, 2.0, 3.0])
    table = StoredTable([lam], np.zeros(3))
    cdf = table.cdf((1.0, 3.0))
    assert cdf.degenerate
    assert cdf.wavelengths.size == 0


def test_resource_round_trip(tmp_path: Path) -> None:
    table = _table()
    write_stored_table(tmp_path / "Demo", table)
    opened = StoredTable.open("Demo", "lambda(m),Z(1),t(yr)", "Llambda(W/m)", False, ResourceLocator([tmp_path]))
    np.testing.assert_array_equal(opened.values, table.values)
    assert [a.interp for a in opened.axes] == ["log", "log", "log"]
    assert opened.log_values
    assert len(describe_table(opened)) == 4


def test_normalize_makes_unit_integrals(tmp_path: Path) -> None:
    write_stored_table(tmp_path / "Demo", _table())
    opened = StoredTable.open("Demo", "lambda(m),Z(1),t(yr)", "Llambda(W/m)", True, ResourceLocator([tmp_path]))
    assert opened.cdf(opened.axis_range(0), 0.01, 1e7).total == pytest.approx(1.0, rel=1e-10)


def test_missing_resource_raises(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("SEDLAUNCH_RESOURCES", raising=False)
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ResourceError):
        StoredTable.open("Nope", "lambda(m)", "L(W/m)", False, ResourceLocator([tmp_path]))


def test_environment_search_path(tmp_path: Path, monkeypatch) -> None:
    write_stored_table(tmp_path / "Demo", _table())
    monkeypatch.setenv("SEDLAUNCH_RESOURCES", str(tmp_path))
    assert ResourceLocator().resolve("Demo") == tmp_path / "Demo.npz"


def test_axis_mismatch_raises(tmp_path: Path) -> None:
    write_stored_table(tmp_path / "Demo", _table())
    with pytest.raises(ResourceError, match="axis 1"):
        StoredTable.open("Demo", "lambda(m),M(Msun),t(yr)", "Llambda(W/m)", False, ResourceLocator([tmp_path]))
    with pytest.raises(ResourceError, match="axes"):
        StoredTable.open("Demo", "lambda(m),Z(1)", "Llambda(W/m)", False, ResourceLocator([tmp_path]))
    with pytest.raises(ResourceError, match="quantity"):
        StoredTable.open("Demo", "lambda(m),Z(1),t(yr)", "Lnu(W/Hz)", False, ResourceLocator([tmp_path]))


def test_value_count_mismatch_raises(tmp_path: Path) -> None:
    lam = AxisGrid("lambda", "m", [1.0, 2.0, 3.0])
    path = write_table_resource(tmp_path / "Short", [lam], np.ones(3), "L(W/m)")
    with np.load(path) as data:
        contents = {k: data[k] for k in data.files}
    contents["values"] = np.ones(2)
    np.savez(path, **contents)
    with pytest.raises(ResourceError, match="value count"):
        StoredTable.open("Short", "lambda(m)", "L(W/m)", False, ResourceLocator([tmp_path]))
