"""
stitch init - Create .stitch/ in the current repository.
"""

from stitch.api import StitchClient


def cmd_init(args, client: StitchClient) -> int:
    """Initialize stitch in the repository."""
    if client.is_initialized():
        print(f"Stitch already initialized in {client.repo_root}")
        return 0

    client.init()
    print(f"Initialized stitch in {client.repo_root / '.stitch'}")
    return 0
