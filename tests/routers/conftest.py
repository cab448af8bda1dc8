from typing import Callable, Dict
from uuid import uuid4

import pytest


@pytest.fixture
def headers_for() -> Callable[[str], Dict[str, str]]:
    """Identity headers for a fresh user acting in the given role."""

    def build(role: str) -> Dict[str, str]:
        return {"X-User-Id": str(uuid4()), "X-User-Role": role}

    return build


@pytest.fixture
def student_headers(headers_for: Callable[[str], Dict[str, str]]) -> Dict[str, str]:
    return headers_for("STUDENT")


@pytest.fixture
def admin_headers(headers_for: Callable[[str], Dict[str, str]]) -> Dict[str, str]:
    return headers_for("ADMIN")
