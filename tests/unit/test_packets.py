import numpy as np
import pytest

from sedlaunch.core.units import C
from sedlaunch.source.packet import PacketBatch, PhotonPacket, doppler_shifted_wavelength
from sedlaunch.source.random import NumpyRandom


def test_packet_batch_rejects_mismatched_columns() -> None:
    with pytest.raises(ValueError):
        PacketBatch(
            history_index=np.arange(2),
            entity=np.zeros(2, dtype=np.int64),
            position=np.zeros((2, 3)),
            direction=np.zeros((2, 3)),
            wavelength=np.zeros(1),
            weight=np.zeros(2),
        )
    with pytest.raises(ValueError):
        PacketBatch(
            history_index=np.arange(2),
            entity=np.zeros(2, dtype=np.int64),
            position=np.zeros((2, 2)),
            direction=np.zeros((2, 3)),
            wavelength=np.zeros(2),
            weight=np.zeros(2),
        )


def test_packet_batch_from_packets_and_concatenate() -> None:
    packets = []
    for h in range(3):
        p = PhotonPacket()
        p.launch(h, 1e-6 * (h + 1), 2.0, position=np.full(3, h), direction=np.array([0.0, 0.0, 1.0]), entity=h)
        packets.append(p)
    batch = PacketBatch.from_packets(packets)
    assert len(batch) == 3
    np.testing.assert_array_equal(batch.history_index, [0, 1, 2])
    np.testing.assert_allclose(batch.wavelength, [1e-6, 2e-6, 3e-6])
    merged = PacketBatch.concatenate([batch, batch])
    assert len(merged) == 6
    assert merged.position.shape == (6, 3)
    assert len(PacketBatch.concatenate([])) == 0


def test_doppler_shift_sign() -> None:
    k = np.array([1.0, 0.0, 0.0])
    toward = doppler_shifted_wavelength(1e-6, k, np.array([1e5, 0.0, 0.0]))
    away = doppler_shifted_wavelength(1e-6, k, np.array([-1e5, 0.0, 0.0]))
    assert toward < 1e-6 < away
    assert toward == pytest.approx(1e-6 * (1.0 - 1e5 / C))
    assert doppler_shifted_wavelength(1e-6, k, None) == 1e-6


def test_random_directions_are_isotropic() -> None:
    rng = NumpyRandom(12)
    dirs = np.array([rng.direction() for _ in range(20_000)])
    np.testing.assert_allclose(np.linalg.norm(dirs, axis=1), 1.0)
    np.testing.assert_allclose(dirs.mean(axis=0), 0.0, atol=0.03)


def test_spawned_streams_are_reproducible() -> None:
    a = [r.uniform() for r in NumpyRandom.spawn(7, 3)]
    b = [r.uniform() for r in NumpyRandom.spawn(7, 3)]
    assert a == b
    assert len(set(a)) == 3
