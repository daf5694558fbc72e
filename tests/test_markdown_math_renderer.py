from quizdesk.core.markdown_math_renderer import MarkdownMathRenderer
from quizdesk.core.models import Question


def test_question_markdown_is_rendered_with_math_left_intact():
    renderer = MarkdownMathRenderer()
    question = Question("q", "s", "Solve **for x**: $x^2 = 4$", ("$x = 2$", "*none*"), "$x = 2$")

    rendered = renderer.render_question(question)

    assert "<strong>for x</strong>" in rendered["question_html"]
    assert "$x^2 = 4$" in rendered["question_html"]
    assert rendered["options_html"] == ["$x = 2$", "<em>none</em>"]


def test_raw_html_is_escaped():
    renderer = MarkdownMathRenderer()

    assert "<script>" not in renderer.render_fragment("<script>alert(1)</script>")


def test_empty_text_has_placeholder():
    assert "No content provided" in MarkdownMathRenderer().render_fragment("   ")
