"""Terminal prompts for the category review (prompt_toolkit).

The review loop only needs "pick one of these categories, or type a new one";
everything interactive lives here so it can be driven from tests with a pipe
input and a ``DummyOutput``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.buffer import Buffer
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

_STYLE = Style.from_dict({"auto-suggestion": "fg:#888888", "bottom-toolbar": "noreverse"})
_NEW_HINT = "  [new category]"


class CategoryVocabulary:
    """Known category codes with case-insensitive lookup and prefix completion."""

    def __init__(self, categories: Iterable[str]) -> None:
        self.words: list[str] = list(dict.fromkeys(categories))
        self._by_lower = {w.lower(): w for w in self.words}

    def canonical(self, text: str) -> str | None:
        return self._by_lower.get(text.strip().lower())

    def completion_for(self, text: str) -> str | None:
        """First category that strictly extends ``text`` (case-insensitive)."""

        if not text or self.canonical(text) is not None:
            return None
        lower = text.lower()
        return next((w for w in self.words if w.lower().startswith(lower)), None)

    def remainder(self, text: str) -> str:
        match = self.completion_for(text)
        return match[len(text) :] if match else ""


class _InlineHint(AutoSuggest):
    """Grey tail of the matching category, or a marker for a new one."""

    def __init__(self, vocab: CategoryVocabulary, allow_new: bool) -> None:
        self._vocab = vocab
        self._allow_new = allow_new

    def get_suggestion(self, buffer, document):
        text = document.text
        if not text or self._vocab.canonical(text) is not None:
            return None
        remainder = self._vocab.remainder(text)
        if remainder:
            return Suggestion(remainder)
        return Suggestion(_NEW_HINT) if self._allow_new else None


class _KnownCategory(Validator):
    def __init__(self, vocab: CategoryVocabulary) -> None:
        self._vocab = vocab

    def validate(self, document) -> None:
        text = document.text.strip()
        if text and self._vocab.canonical(text) is None:
            raise ValidationError(message=f"Unknown category: {text}")


def _bindings(vocab: CategoryVocabulary) -> KeyBindings:
    kb = KeyBindings()

    def _open_or_cycle(b: Buffer) -> None:
        if b.complete_state is None:
            b.start_completion(select_first=True)
        else:
            b.complete_next()

    @kb.add("down", eager=True)
    def _(event) -> None:  # pragma: no cover - needs a real terminal
        _open_or_cycle(event.app.current_buffer)

    @kb.add("tab", eager=True)
    def _(event) -> None:
        b = event.app.current_buffer
        remainder = vocab.remainder(b.document.text)
        if remainder:
            b.insert_text(remainder)
        else:
            _open_or_cycle(b)

    @kb.add("enter", eager=True)
    def _(event) -> None:
        # Highlighted menu entry first, then the inline completion.
        b = event.app.current_buffer
        state = b.complete_state
        if state is not None and state.current_completion is not None:
            b.apply_completion(state.current_completion)
        else:
            remainder = vocab.remainder(b.document.text)
            if remainder:
                b.insert_text(remainder)
        b.validate_and_handle()

    return kb


def _session_for(session: PromptSession | None, kb: KeyBindings) -> PromptSession:
    # Reuse the caller's input/output (tests pass a pipe) with our bindings.
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def select_category(
    categories: Sequence[str] | Iterable[str],
    *,
    default: str,
    message: str = "Category (Enter to accept): ",
    session: PromptSession | None = None,
    allow_new: bool = True,
    hint: str | None = None,
) -> str:
    """Prompt for a category with ``default`` pre-filled.

    Enter accepts the buffer, completing a unique prefix first; Tab completes
    the prefix or opens the menu. Known categories come back in their
    canonical spelling whatever case was typed. Unknown input is returned as
    typed when ``allow_new`` is set; otherwise the prompt refuses it. An
    empty answer returns ``default``. ``hint`` is shown as a bottom toolbar.
    """

    vocab = CategoryVocabulary(categories)
    kb = _bindings(vocab)
    prompt_kwargs: dict[str, Any] = {
        "message": message,
        "default": default if isinstance(default, str) else "",
        "completer": WordCompleter(vocab.words, ignore_case=True, match_middle=True),
        "auto_suggest": _InlineHint(vocab, allow_new),
        "key_bindings": kb,
        "style": _STYLE,
        "bottom_toolbar": hint,
    }
    if not allow_new:
        prompt_kwargs["validator"] = _KnownCategory(vocab)
        prompt_kwargs["validate_while_typing"] = False

    answer = _session_for(session, kb).prompt(**prompt_kwargs).strip()
    if not answer:
        return default
    return vocab.canonical(answer) or (answer if allow_new else default)


__all__ = ["CategoryVocabulary", "select_category"]
