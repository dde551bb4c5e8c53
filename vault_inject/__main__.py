"""Allow ``python -m vault_inject``."""

from vault_inject.cli import main

if __name__ == "__main__":
    main()
