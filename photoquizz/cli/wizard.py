"""Interactive prompt for the photo library location."""

import os
from typing import Optional

from photoquizz.core.utils import exists, normalize_path

MAX_ATTEMPTS = 3


def run_wizard(max_attempts: int = MAX_ATTEMPTS) -> Optional[str]:
    """Ask for the Takeout folder until an existing directory is given.

    Args:
        max_attempts: Prompts before giving up.

    Returns:
        Normalized directory path, or None if cancelled, left blank or
        never valid.
    """
    print("\nNo photo library given. Where is your Google Photos export?")

    for _ in range(max_attempts):
        try:
            answer = input("Takeout folder: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nCancelled.")
            return None
        if not answer:
            return None

        path = normalize_path(answer)
        if not exists(path):
            print(f"  Nothing found at {path}")
        elif not os.path.isdir(path):
            print(f"  {path} is a file, not a folder")
        else:
            return path

    print("Giving up after too many invalid paths.")
    return None
