# /offline_omr/reporting.py
"""
Functions for generating reports (graded image, per-student CSV, summary CSV).
"""
import logging

import cv2
import pandas as pd

from . import config
from .image_processing import to_bgr

logger = logging.getLogger(__name__)


# FUNCTION 1: Draws the modeled bubbles over the sheet
def create_visual_feedback(image, marks):
    """
    Outlines every modeled bubble on a BGR copy of the image: filled bubbles
    in green, empty ones in red.
    """
    vis_image = to_bgr(image)
    for b in marks:
        if b.filled:
            color, thickness = config.VIS_FILLED_COLOR, config.VIS_THICKNESS_FILLED
        else:
            color, thickness = config.VIS_EMPTY_COLOR, config.VIS_THICKNESS_EMPTY
        cv2.circle(vis_image, (b.x, b.y), b.radius, color, thickness)
    logger.debug("Visual feedback drawn for %d bubbles.", len(marks))
    return vis_image


# FUNCTION 2: Saves the individual result for one student
def save_results_csv(results, summary, output_path):
    """Saves the per-question results and the score summary to a CSV file."""
    df = pd.DataFrame(results, columns=['question_number', 'correct_answer', 'student_answer', 'marks'])

    summary_rows = pd.DataFrame([
        {'question_number': 'Total', 'correct_answer': summary.total, 'student_answer': 'Obtained', 'marks': summary.correct},
        {'question_number': 'Percentage', 'correct_answer': '', 'student_answer': '', 'marks': f"{summary.percentage:.2f}%"}
    ])
    df = pd.concat([df, summary_rows], ignore_index=True)
    df.to_csv(output_path, index=False)
    logger.info("Results successfully saved to %s", output_path)


# FUNCTION 3: Creates the summary report of all submitted attempts
def create_summary_report(records, output_path):
    """
    Compiles persisted attempt records into one row per student, followed by
    overall statistics. Returns the per-student DataFrame (None if empty).
    """
    rows = []
    for record in records:
        max_total = record.get('maxTotal') or 0
        final_total = record.get('finalTotal') or 0
        reviewed = record.get('offlineProcessing', {}).get('reviewedAnswers', {})
        rows.append({
            'attempt_id': record.get('id', ''),
            'student_name': record.get('candidate', {}).get('name', ''),
            'student_id': reviewed.get('studentInfo', {}).get('studentId', ''),
            'test_id': record.get('testId', ''),
            'marks_obtained': int(final_total),
            'total_questions': int(max_total),
            'percentage_score': (100.0 * final_total / max_total) if max_total else 0.0,
        })

    if not rows:
        logger.warning("No submitted attempts found. Summary report will not be created.")
        return None

    summary_df = pd.DataFrame(rows)
    scores = summary_df['percentage_score']
    std_dev = scores.std() if len(scores) > 1 else 0.0
    stats_df = pd.DataFrame({
        'Statistic': ['Number of Students', 'Average Score (%)', 'Highest Score (%)', 'Lowest Score (%)', 'Std Deviation'],
        'Value': [len(summary_df), f'{scores.mean():.2f}', f'{scores.max():.2f}', f'{scores.min():.2f}', f'{std_dev:.2f}'],
    })

    with open(output_path, 'w', newline='') as f:
        summary_df.to_csv(f, index=False)
        f.write('\n--- Overall Statistics ---\n')
        stats_df.to_csv(f, index=False)
    logger.info("Successfully created summary report at: %s", output_path)
    return summary_df
