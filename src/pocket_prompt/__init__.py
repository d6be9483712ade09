"""Pocket Prompt: a versioned, git-synchronized prompt library.

The package is organized by concern:

- :mod:`pocket_prompt.expression`: boolean tag expressions
- :mod:`pocket_prompt.artifacts`: on-disk prompt and template storage
- :mod:`pocket_prompt.sync`: git synchronization
- :mod:`pocket_prompt.library`: search, saved searches, and the service
  that ties the rest together
"""

from pocket_prompt.library import PromptLibrary

__all__ = ["PromptLibrary"]
