"""Shared pytest fixtures for gaussian_uncertainty tests."""

import pytest

from gaussian_uncertainty import (
    UDoubleCompare,
    UDoubleMSCCorr,
    UDoubleMSCUncorr,
    seed_shuffle_rng,
)


@pytest.fixture(autouse=True)
def fresh_epoch():
    """Every test starts with empty registries and a reproducible shuffle."""
    UDoubleCompare.new_epoch()
    seed_shuffle_rng(20190101)
    yield
    UDoubleMSCCorr.set_disc_thresh(None)
    UDoubleMSCUncorr.set_disc_thresh(None)
