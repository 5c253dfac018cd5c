"""BDD tests for request logging."""

import pytest
from pytest_bdd import scenarios

scenarios(".")

pytestmark = [
    pytest.mark.tier(2),
    pytest.mark.tra("Interceptor.RequestLogging"),
]
