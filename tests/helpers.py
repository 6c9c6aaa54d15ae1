"""Sample store markup and a scripted stand-in for a LangChain chat model."""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Callable

BASE = "https://store.example"
HOME = f"{BASE}/"

HOMEPAGE_HTML = """\
<!DOCTYPE html>
<html>
<head>
  <title>Store Example</title>
  <style>.nav { color: red </style>
  <link rel="stylesheet" href="/assets/site.css">
</head>
<body>
  <nav>
    <a href="/collections/shirts">Shirts</a>
    <a href="/collections/pants">Pants</a>
    <a href="https://store.example/collections/shirts">Shirts again</a>
    <a href="/shop/sale">Sale</a>
    <a href="/collections/hats">Hats</a>
    <a href="/collections/socks">Socks</a>
    <a href="/about">About us</a>
    <a href="/products/featured-tee">Featured tee</a>
  </nav>
  <main><h1>Everyday basics, made well.</h1></main>
</body>
</html>
"""

SHIRTS_HTML = """\
<html><body>
  <a href="/products/tee-1">Tee 1</a>
  <a href="/products/tee-2">Tee 2</a>
  <a href="/products/tee-3">Tee 3</a>
  <a href="/products/tee-4">Tee 4</a>
  <a href="/products/tee-5">Tee 5</a>
  <a href="/products/tee-1">Tee 1 (again)</a>
  <a href="/collections/shirts?page=2">Next page</a>
  <a href="/cart">Cart</a>
</body></html>
"""

PANTS_HTML = """\
<html><body>
  <a href="/products/chino-1">Chino 1</a>
  <a href="/products/chino-2">Chino 2</a>
  <a href="/products/chino-3">Chino 3</a>
  <a href="/products/tee-1">Matching tee</a>
</body></html>
"""

PRODUCT_HTML = """\
<html><head><title>Product</title></head><body>
  <main>
    <h1>Organic cotton tee</h1>
    <div class="product-image"><img src="/cdn/product.jpg" alt="Tee"></div>
    <p>Soft, breathable and built to last. Add to cart today.</p>
  </main>
</body></html>
"""

PRODUCT_URLS = [f"{BASE}/products/tee-{i}" for i in range(1, 6)] + [
    f"{BASE}/products/chino-{i}" for i in range(1, 4)
]

SCORES = {
    "Brand Alignment": 72,
    "Conversion Effectiveness": 81,
    "SEO and AI Best Practices": 65,
}


# ---------------------------------------------------------------------------
# Fake oracle
# ---------------------------------------------------------------------------

Responder = Callable[[str, str], str]


class FakeLLM:
    """Stand-in for a LangChain chat model; answers via *responder*."""

    def __init__(self, responder: Responder) -> None:
        self.responder = responder
        self.calls: list[tuple[str, str]] = []

    async def ainvoke(self, messages):
        system = messages[0].content
        user = messages[-1].content
        self.calls.append((system, user))
        return SimpleNamespace(content=self.responder(system, user))


def happy_responder(system: str, user: str) -> str:
    """Answer every prompt type the pipeline sends with a valid reply."""
    if "NEVER generate fictional URLs" in system:
        urls = [line for line in user.splitlines() if line.startswith("https://")]
        return json.dumps(
            {
                "topProducts": [
                    {"url": u, "title": u.rsplit("/", 1)[-1], "reason": "Prominent"}
                    for u in urls[:6]
                ]
            }
        )
    if "brand positioning" in system:
        return json.dumps({"positioning": "Durable everyday basics for busy people."})
    for title, score in SCORES.items():
        if f"specializing in {title}" in system:
            return json.dumps({"score": score, "summary": f"{title} is well supported."})
    if "strategist" in system:
        return json.dumps({"executiveSummary": "A coherent brand with room to improve SEO."})
    raise AssertionError(f"unexpected prompt: {system[:80]!r}")
