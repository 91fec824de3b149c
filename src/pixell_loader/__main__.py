"""Run the target agent: python -m pixell_loader."""

from pixell_loader.main import run


if __name__ == "__main__":
    run()
