"""Shared fixtures: a fake store served through respx and a scripted oracle.

Mocking strategy
----------------
* Network — ``respx`` patches ``httpx`` at the transport layer; the ``store``
  fixture serves the catalogue from ``tests/helpers.py`` at
  ``https://store.example``.
* Oracle  — ``shopaudit.llm.fallback._get_llm`` is patched to return a
  ``FakeLLM`` whose ``ainvoke`` answers from a responder function, so the
  real fallback layer, JSON parsing and schema validation all run.
"""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
import respx

from shopaudit.llm.fallback import ModelCandidate, ModelRegistry

from tests.helpers import (
    BASE,
    HOME,
    HOMEPAGE_HTML,
    PANTS_HTML,
    PRODUCT_HTML,
    SHIRTS_HTML,
    FakeLLM,
    happy_responder,
)


@pytest.fixture()
def registry() -> ModelRegistry:
    return ModelRegistry([ModelCandidate("openai", "gpt-4o"), ModelCandidate("openai", "gpt-4o-mini")])


@pytest.fixture()
def fake_oracle():
    """Patch the model factory with a ``FakeLLM`` using ``happy_responder``.

    The yielded mock exposes the fake model as ``.llm``.
    """
    llm = FakeLLM(happy_responder)
    with patch("shopaudit.llm.fallback._get_llm", return_value=llm) as factory:
        factory.llm = llm
        yield factory


@pytest.fixture()
def store():
    """Serve the sample catalogue; individual tests may override routes."""
    with respx.mock(assert_all_called=False) as router:
        router.get(HOME, name="home").mock(return_value=httpx.Response(200, text=HOMEPAGE_HTML))
        router.get(f"{BASE}/collections/shirts", name="shirts").mock(
            return_value=httpx.Response(200, text=SHIRTS_HTML)
        )
        router.get(f"{BASE}/collections/pants", name="pants").mock(
            return_value=httpx.Response(200, text=PANTS_HTML)
        )
        router.get(f"{BASE}/shop/sale", name="sale").mock(
            return_value=httpx.Response(404, text="Not Found")
        )
        router.get(url__regex=rf"{BASE}/products/.*", name="products").mock(
            return_value=httpx.Response(200, text=PRODUCT_HTML)
        )
        yield router
