"""Commit messages for sync commits.

The templated message is always available.  A :class:`MessageGenerator`
may write a better one from the changed paths; when it fails the caller
falls back to the template.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Protocol, Sequence

from .exceptions import CommitMessageGenerationFailed, InvalidCommitMessage

if TYPE_CHECKING:
    from .plan import SyncPlan

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

_PROMPT = """\
You are an expert developer writing git commit messages.
Based on the following file changes, generate a concise and descriptive \
commit message (Conventional Commits format).

Files Added:
{added}

Files Modified:
{modified}

Files Deleted:
{deleted}

Output ONLY the commit message string. No markdown, no explanations.
"""


def default_message(upload_count: int) -> str:
    return f"chore: sync {upload_count} files"


def format_commit_message(plan: SyncPlan, custom_message: str | None = None) -> str:
    """Commit message for *plan*.

    Args:
        plan: The analyzed plan.
        custom_message: Overrides the template.  Supports placeholders:
            ``{default}``, ``{add_count}``, ``{update_count}``,
            ``{delete_count}``, ``{total_count}``.  Literal braces are
            written doubled (``{{`` and ``}}``).

    Raises:
        InvalidCommitMessage: *custom_message* uses an unknown placeholder
            or has unbalanced braces.
    """
    default = default_message(len(plan.uploads))
    if not custom_message:
        return default
    if "{" not in custom_message and "}" not in custom_message:
        return custom_message
    try:
        return custom_message.format(
            default=default,
            add_count=len(plan.new),
            update_count=len(plan.modified),
            delete_count=len(plan.deleted),
            total_count=plan.total,
        )
    except KeyError as exc:
        raise InvalidCommitMessage(
            f"Unknown placeholder {{{exc.args[0]}}} in commit message "
            f"(use {{{{ and }}}} for literal braces)"
        ) from exc
    except (IndexError, ValueError, AttributeError, TypeError) as exc:
        raise InvalidCommitMessage(f"Invalid commit message template: {exc}") from exc


class MessageGenerator(Protocol):
    """Writes a commit message from the three changed-path lists."""

    def __call__(
        self, added: Sequence[str], modified: Sequence[str], deleted: Sequence[str],
    ) -> str: ...


def build_prompt(added: Sequence[str], modified: Sequence[str], deleted: Sequence[str]) -> str:
    return _PROMPT.format(
        added="\n".join(added) or "None",
        modified="\n".join(modified) or "None",
        deleted="\n".join(deleted) or "None",
    )


class AnthropicMessageGenerator:
    """Commit messages written by an Anthropic model.

    Requires the ``ai`` extra and an API key (argument or
    ``ANTHROPIC_API_KEY``).  Every failure surfaces as
    :class:`CommitMessageGenerationFailed`.
    """

    def __init__(self, api_key: str | None = None, model: str | None = None,
                 max_tokens: int = 200):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        self.model = model or os.environ.get("GITSYNC_AI_MODEL", DEFAULT_MODEL)
        self.max_tokens = max_tokens
        self._client = None

    def _get_client(self):
        if not self.api_key:
            raise CommitMessageGenerationFailed("Anthropic API key missing")
        if self._client is None:
            try:
                import anthropic
            except ImportError as exc:
                raise CommitMessageGenerationFailed(
                    "AI commit messages require the 'ai' extra: pip install gitsync[ai]"
                ) from exc
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def __call__(self, added, modified, deleted) -> str:
        client = self._get_client()
        try:
            response = client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": build_prompt(added, modified, deleted)}],
            )
        except Exception as exc:
            raise CommitMessageGenerationFailed(f"Message generation failed: {exc}") from exc
        text = "".join(
            getattr(block, "text", "") for block in response.content
        ).strip()
        if not text:
            raise CommitMessageGenerationFailed("Model returned an empty message")
        return text
