"""CLI modules.

Note: avoid importing submodules at import-time. This keeps `python -m aerotest.cli.<cmd>`
free of `runpy` warnings and avoids side effects from eager imports.
"""

from __future__ import annotations


def simulate_main(argv: list[str] | None = None) -> int:
    """Lazy wrapper for `aerotest.cli.simulate.main`."""

    from .simulate import main

    return main(argv)


__all__ = ["simulate_main"]
