"""Allow `python -m drift`."""
from .cli import main


if __name__ == "__main__": main()
