"""Punto de entrada de ``python -m salud_insights``."""

from __future__ import annotations

from salud_insights.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
