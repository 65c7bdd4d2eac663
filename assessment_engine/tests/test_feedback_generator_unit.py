"""
Unit Tests for generated markdown feedback
"""
from assessment_engine.services.feedback_generator import (
    generate_feedback, FEEDBACK_TITLE, FEEDBACK_FOOTER
)
from assessment_engine.services.score_calculator import Judgment, compute_score
from assessment_engine.tests.factories import build_rubric, best_judgments


def test_worked_example_feedback():
    rubric = build_rubric()
    text = generate_feedback(rubric, compute_score(rubric, best_judgments("Clean, tested code", None)))

    lines = text.split("\n")
    assert lines[0] == FEEDBACK_TITLE
    assert "Overall Score: 85/100 (85%)" in lines
    assert "## Implementation" in lines
    assert "Level: Complete (40 points)" in lines
    assert "Clean, tested code" in lines
    assert "## Documentation" in lines
    assert "Level: Thorough (45 points)" in lines
    assert lines[-1] == FEEDBACK_FOOTER


def test_sections_follow_rubric_order():
    rubric = build_rubric()
    judgments = list(reversed(best_judgments()))
    text = generate_feedback(rubric, compute_score(rubric, judgments))

    assert text.index("## Implementation") < text.index("## Documentation")


def test_percentage_rounded_to_two_decimals():
    rubric = build_rubric(max_points=90.0)
    judgments = [Judgment("c1", "l1a"), Judgment("c2", "l2a")]
    text = generate_feedback(rubric, compute_score(rubric, judgments))

    # 35 / 90 = 38.888...%
    assert "Overall Score: 35/90 (38.89%)" in text


def test_criteria_without_comment_have_no_comment_line():
    rubric = build_rubric()
    text = generate_feedback(rubric, compute_score(rubric, best_judgments()))

    section = text.split("## Documentation\n")[1]
    assert section.startswith("Level: Thorough (45 points)\n\n\n")
