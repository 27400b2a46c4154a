"""Thin launcher so platform auto-detection (main.py) starts the API server."""
from monitor.run import main

if __name__ == "__main__":
    main(["serve"])
