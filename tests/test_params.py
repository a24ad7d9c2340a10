import pytest
import numpy as np
from neuralwaves.params import WaveParams, resolve_params, calc_wave_speed
from neuralwaves.utils import make_time_grid, _set_cache

def test_default_params():

    params = WaveParams()

    assert params.r_s == 30
    assert params.gamma_s == 116
    assert params.wave_speed == pytest.approx(3.48)

def test_params_are_immutable():

    params = WaveParams()
    with pytest.raises(AttributeError):
        params.gamma_s = 1.0

@pytest.mark.parametrize("kwargs", [{"r_s": 0}, {"gamma_s": -1}, {"gamma_s": np.inf},
                                    {"r_s": "abc"}])
def test_invalid_params(kwargs):

    with pytest.raises(ValueError, match="Parameter `.*` must be.*"):
        WaveParams(**kwargs)

def test_resolve_params():

    assert resolve_params() == WaveParams()
    assert resolve_params(r=10) == WaveParams(r_s=10, gamma_s=116)
    assert resolve_params({"gamma_s": 1}) == WaveParams(r_s=30, gamma_s=1)

    params = WaveParams(r_s=1, gamma_s=1)
    assert resolve_params(params) is params

def test_resolve_params_invalid():

    with pytest.raises(ValueError, match=r"Invalid wave model parameter\(s\) \['rs'\].*"):
        resolve_params({"rs": 1})
    with pytest.raises(ValueError, match="`params` must be a WaveParams instance.*"):
        resolve_params([30, 116])

def test_calc_wave_speed():

    assert calc_wave_speed(1000, 10) == pytest.approx(10)

def test_make_time_grid():

    t = make_time_grid(0.1, 11)

    assert len(t) == 11
    assert t[0] == 0
    assert t[-1] == pytest.approx(1.0)

    with pytest.raises(ValueError, match="`dt` must be positive."):
        make_time_grid(0, 10)
    with pytest.raises(ValueError, match="`nt` must be an integer.*"):
        make_time_grid(0.1, 1)

def test_set_cache(tmp_path, monkeypatch):

    monkeypatch.setenv("CACHE_DIR", str(tmp_path))

    assert str(_set_cache().location) == str(tmp_path)
