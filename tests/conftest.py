import pytest

from stewart_platform.dimensions import PlatformConfig

from fakes import FakeLink, FakeSerial


@pytest.fixture
def config():
    return PlatformConfig()


@pytest.fixture
def degenerate_config():
    """Leg 2's platform joint sits straight above its base joint at z = -initial_height."""
    cfg = PlatformConfig()
    cfg.platform_radius = cfg.base_radius
    angles = list(cfg.platform_angles_deg)
    angles[2] = cfg.base_angles_deg[2]
    cfg.platform_angles_deg = angles
    return cfg


@pytest.fixture
def fake_link():
    return FakeLink()


@pytest.fixture(autouse=True)
def _reset_fake_serial():
    FakeSerial.instances.clear()
    yield
