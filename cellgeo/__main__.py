"""Allow running cellgeo as a module: python -m cellgeo."""

from cellgeo.cli import app

if __name__ == "__main__":
    app()
