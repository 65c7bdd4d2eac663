"""
assessment_engine/services/feedback_generator.py
Markdown feedback summary built from a scored assessment.

Used when an evaluator asks for generated feedback instead of writing it.
"""
from typing import List

from assessment_engine.services.score_calculator import ScoreResult

FEEDBACK_TITLE = "# Project Assessment Feedback"
FEEDBACK_FOOTER = "_This feedback was generated automatically based on the rubric assessment._"


def _number(value: float) -> str:
    """2-decimal display value; whole numbers lose the trailing .0"""
    rounded = round(float(value), 2)
    if rounded.is_integer():
        return str(int(rounded))
    return str(rounded)


def generate_feedback(rubric, score: ScoreResult) -> str:
    """
    Render the score as markdown: overall line, then one section per
    criterion in rubric order with the chosen level and any comment.

    Example:
        # Project Assessment Feedback

        Overall Score: 85/100 (85%)

        ## Code Quality
        Level: Excellent (40 points)
        ...
    """
    lines: List[str] = [
        FEEDBACK_TITLE,
        "",
        f"Overall Score: {_number(score.total_score)}/{_number(score.max_score)} "
        f"({_number(score.percentage)}%)",
        "",
    ]

    by_criterion = {row.criterion_id: row for row in score.criteria}
    for criterion in rubric.criteria:
        row = by_criterion.get(criterion.id)
        if row is None:
            continue

        lines.append(f"## {criterion.name}")
        level = criterion.find_level(row.level_id)
        if level is not None:
            lines.append(f"Level: {level.name} ({_number(row.score)} points)")
            lines.append("")
        if row.comment:
            lines.append(row.comment)
            lines.append("")

    lines.append("")
    lines.append(FEEDBACK_FOOTER)
    return "\n".join(lines)
