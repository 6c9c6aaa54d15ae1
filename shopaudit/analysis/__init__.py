"""Analysis pipeline package.

Public API::

    from shopaudit.analysis import stream_analysis
    async for event in stream_analysis("https://store.example", registry=registry):
        ...
"""

from shopaudit.analysis.orchestrator import analyze_site, run_analysis, stream_analysis

__all__ = ["analyze_site", "run_analysis", "stream_analysis"]
