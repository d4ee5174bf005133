import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from encrust import SeedKey, XChaChaKey

SEED = 0x2357_BD11_1317_1D1F
OTHER_SEED = 0x5233_9024_7539_8815
TEST_STRING = "The quick brown fox jumps over the lazy dog😊"
XCHACHA_KEY = bytes(range(32))
XCHACHA_NONCE = bytes(range(100, 124))


@pytest.fixture(params=["fast", "xchacha"])
def make_key(request):
    """Factory returning fresh, equal key material for one backend per run."""
    if request.param == "fast":
        return lambda: SeedKey(SEED)
    return lambda: XChaChaKey(XCHACHA_KEY, XCHACHA_NONCE)
