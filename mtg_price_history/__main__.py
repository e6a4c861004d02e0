"""Allow `python -m mtg_price_history`."""

from mtg_price_history.cli import main

if __name__ == "__main__":
    main()
