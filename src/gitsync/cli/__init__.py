"""gitsync CLI — push a local folder to a GitHub branch."""

from ._helpers import main  # noqa: F401

# Import command modules to register Click commands with the main group.
from . import _auth, _sync  # noqa: F401
