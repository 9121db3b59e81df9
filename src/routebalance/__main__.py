"""Allow ``python -m routebalance``."""

from routebalance.app import app

if __name__ == "__main__":
    app()
