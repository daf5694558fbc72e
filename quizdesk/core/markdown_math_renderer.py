"""Markdown + LaTeX rendering for question text served to students.

Question and option text is authored as Markdown with inline ``$...$`` math.
The server converts it to HTML fragments and leaves the math delimiters in
place for MathJax in the browser. Raw HTML in question text is not passed
through.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt

from quizdesk.core.models import Question


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a block of markdown into an HTML fragment."""
        sanitized = markdown_text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render a single line (an option label) without a wrapping paragraph."""
        return self._markdown.renderInline(markdown_text.strip())

    def render_question(self, question: Question) -> dict[str, object]:
        return {
            "question_html": self.render_fragment(question.question_text),
            "options_html": [self.render_inline(option) for option in question.options],
        }


renderer = MarkdownMathRenderer()
# MarkdownIt is safe for concurrent read-only renders, so one shared instance serves every request.
