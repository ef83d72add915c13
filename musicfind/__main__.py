"""Allow running ``python -m musicfind DIR [DIR ...]``."""

from musicfind.app import main

if __name__ == "__main__":
    main()
