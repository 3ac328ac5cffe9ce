"""CLI entry point for skill-disclosure.

Allows running the package as a module:
    python -m skill_disclosure
"""

from skill_disclosure.cli import main

if __name__ == "__main__":
    main()
