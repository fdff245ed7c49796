"""Enable running copilot-usage as a module: python -m copilot_usage."""

from copilot_usage.cli import main

if __name__ == "__main__":
    main()
