"""Top-level package for the GCSE marking-scheme detection engine.

Provides subpackages:
- gcse_markscheme.loading – corpus ingestion, JSONL sources and the TTL cache
- gcse_markscheme.detection – similarity scoring and question detection
- gcse_markscheme.orchestration – submission-level grouping, consensus and merging
"""


def _get_version() -> str:
    """Get version from importlib.metadata (installed) or pyproject.toml (dev)."""
    from pathlib import Path

    try:
        from importlib.metadata import PackageNotFoundError, version as pkg_version
        return pkg_version("gcse-markscheme")
    except PackageNotFoundError:
        pass

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        for line in pyproject.read_text().splitlines():
            if line.strip().startswith("version"):
                # Parse: version = "0.1.0"
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.0.0"


__version__ = _get_version()
__all__: list[str] = ["__version__"]
