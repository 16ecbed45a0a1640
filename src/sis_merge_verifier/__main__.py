"""Module entry point for `python -m sis_merge_verifier`."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
