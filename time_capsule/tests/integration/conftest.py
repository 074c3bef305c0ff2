import os

import pytest


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    if os.getenv("TIME_CAPSULE_PINNING_JWT"):
        return
    mark_expr = getattr(config.option, "markexpr", "")
    if "integration" in mark_expr:
        return
    skip = pytest.mark.skip(reason="TIME_CAPSULE_PINNING_JWT not set")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip)


@pytest.fixture(scope="session")
def pinning_jwt() -> str:
    jwt = os.getenv("TIME_CAPSULE_PINNING_JWT")
    if not jwt:
        pytest.fail("TIME_CAPSULE_PINNING_JWT must be set to run integration tests.")
    return jwt
