# /main.py
"""
Main script to run the offline OMR grader in batch mode.

Every image in the input directory is preprocessed, its bubbles are read
against the layout from the sheet's QR payload (layout.json), and the result
is graded and submitted to the attempt store. Images must be named
<studentId>_<name>.png (or .jpg) so the identity fields can be filled in.
"""
import glob
import logging
import os
import sys

import cv2

from offline_omr import config, grader, reporting
from offline_omr.errors import OMRError
from offline_omr.pipeline import process_sheet
from offline_omr.schemas import LayoutDescriptor
from offline_omr.storage import JsonAttemptStore

logger = logging.getLogger("offline_omr.batch")


def setup_directories():
    """Create output directories if they don't exist."""
    os.makedirs(config.OUTPUT_VISUAL_DIR, exist_ok=True)
    os.makedirs(config.STUDENT_RESULTS_DIR, exist_ok=True)
    logger.info("Output directories verified.")


def load_layout(path):
    """Reads the QR payload JSON saved next to the scans."""
    with open(path, 'r', encoding='utf-8') as f:
        return LayoutDescriptor.from_qr_payload(f.read())


def identity_from_filename(image_path):
    """'2024001_Kim Minji.png' -> ('Kim Minji', '2024001')."""
    stem = os.path.splitext(os.path.basename(image_path))[0]
    student_id, _, name = stem.partition('_')
    return name.strip(), student_id.strip()


def process_single_sheet(image_path, layout, master_answers, store):
    """
    Executes the full OMR workflow for a single image sheet.
    """
    stem = os.path.splitext(os.path.basename(image_path))[0]

    run = process_sheet(image_path, layout, master_answers)
    session = run.session

    name, student_id = identity_from_filename(image_path)
    session.set_student_info(name=name, student_id=student_id)
    attempt = session.submit(store)

    csv_output_path = os.path.join(config.STUDENT_RESULTS_DIR, f"{stem}.csv")
    visual_output_path = os.path.join(config.OUTPUT_VISUAL_DIR, f"{stem}_graded.png")

    reporting.save_results_csv(
        grader.question_results(session.reviewed, master_answers), attempt.result, csv_output_path)
    cv2.imwrite(visual_output_path, reporting.create_visual_feedback(run.processed, run.marks))
    logger.info("Saved graded image to %s", visual_output_path)
    return attempt


def main():
    """Main function to orchestrate the batch processing."""
    logging.basicConfig(level=logging.INFO, format=config.LOG_FORMAT, datefmt=config.LOG_DATE_FORMAT)
    setup_directories()

    try:
        master_answers = grader.load_master_answers(config.MASTER_ANSWERS_PATH)
        layout = load_layout(config.LAYOUT_PATH)
    except (FileNotFoundError, OMRError) as e:
        logger.critical("%s. Cannot proceed without the answer key and layout.", e)
        sys.exit(1)

    image_files = sorted(
        path for pattern in config.IMAGE_EXTENSIONS
        for path in glob.glob(os.path.join(config.INPUT_DIR, pattern)))

    if not image_files:
        logger.info("No images found in the input directory: %s", config.INPUT_DIR)
        return

    store = JsonAttemptStore(config.ATTEMPTS_PATH)
    logger.info("Found %d image(s) to process.", len(image_files))
    for image_path in image_files:
        logger.info("--- Processing: %s ---", os.path.basename(image_path))
        try:
            process_single_sheet(image_path, layout, master_answers, store)
        except OMRError as e:
            logger.error("Skipping %s: %s", os.path.basename(image_path), e)
        except Exception:
            logger.exception("An unexpected error occurred while processing %s", os.path.basename(image_path))

    logger.info("--- Creating summary report of all students ---")
    summary_output_path = os.path.join(config.CSV_DIR, 'student_answers.csv')
    reporting.create_summary_report(store.load_all(), summary_output_path)

    logger.info("--- Batch processing complete. ---")


if __name__ == '__main__':
    main()
