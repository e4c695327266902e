"""
Integration Tests: scanned image file -> review session -> attempt store.
"""

import json

import cv2
import pytest

import main
from offline_omr import config
from offline_omr.errors import ImageLoadError
from offline_omr.grader import ReviewState
from offline_omr.image_processing import to_bgr
from offline_omr.pipeline import process_sheet
from offline_omr.schemas import GradingResult, PreprocessingSettings
from offline_omr.storage import InMemoryAttemptStore, JsonAttemptStore


@pytest.fixture
def scan_path(tmp_path, sheet_factory):
    """Questions 1-3 marked A, C, B, written to disk as a PNG."""
    path = tmp_path / "2024001_Kim Minji.png"
    cv2.imwrite(str(path), to_bgr(sheet_factory({0: [0], 1: [2], 2: [1]})))
    return path


class TestProcessSheet:

    def test_end_to_end_score_then_override(self, scan_path, layout, answer_key):
        run = process_sheet(scan_path, layout, answer_key)

        assert run.session.extracted.mcq_answers == {"q1": 0, "q2": 2, "q3": 1}
        assert run.session.result == GradingResult(correct=2, total=3)

        assert run.session.override_answer("q3", 3) == GradingResult(correct=3, total=3)

    def test_processed_image_matches_source_size_and_is_binary(self, scan_path, layout, answer_key):
        run = process_sheet(scan_path, layout, answer_key)
        assert (run.processed.width, run.processed.height) == (run.source.width, run.source.height)
        assert set(run.processed.pixels[..., :3].ravel().tolist()) <= {0, 255}
        assert len(run.marks) == 50

    def test_full_turn_rotation_gives_same_answers(self, scan_path, layout, answer_key):
        settings = PreprocessingSettings().rotated('right').rotated('right').rotated('right').rotated('right')
        run = process_sheet(scan_path, layout, answer_key, settings=settings)
        assert run.session.extracted.mcq_answers == {"q1": 0, "q2": 2, "q3": 1}

    def test_high_threshold_blackens_sheet(self, scan_path, layout, answer_key):
        run = process_sheet(scan_path, layout, answer_key, settings=PreprocessingSettings(threshold=255))
        # Every bubble reads as filled, so each question takes choice A
        assert set(run.session.extracted.mcq_answers.values()) == {0}
        assert len(run.session.extracted.mcq_answers) == layout.num_questions

    def test_submit_writes_one_record(self, scan_path, layout, answer_key):
        store = InMemoryAttemptStore()
        run = process_sheet(scan_path, layout, answer_key)
        run.session.set_student_info(name="Kim Minji", student_id="2024001")

        attempt = run.session.submit(store)

        assert run.session.state == ReviewState.SUBMITTED
        assert store.records[0]["offlineProcessing"]["originalImage"] == str(scan_path)
        assert attempt.record["maxTotal"] == 3

    def test_unreadable_image_raises_without_session(self, tmp_path, layout, answer_key):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not a png")
        with pytest.raises(ImageLoadError):
            process_sheet(path, layout, answer_key)


class TestBatchRunner:

    def test_identity_from_filename(self):
        assert main.identity_from_filename("/scans/2024001_Kim Minji.png") == ("Kim Minji", "2024001")
        assert main.identity_from_filename("scan.png") == ("", "scan")

    def test_load_layout_reads_qr_payload(self, tmp_path, layout):
        path = tmp_path / "layout.json"
        path.write_text(json.dumps(layout.to_dict()), encoding="utf-8")
        assert main.load_layout(path) == layout

    def test_process_single_sheet_writes_reports_and_record(self, tmp_path, monkeypatch, scan_path, layout, answer_key):
        results_dir = tmp_path / "results"
        visual_dir = tmp_path / "visual"
        results_dir.mkdir()
        visual_dir.mkdir()
        monkeypatch.setattr(config, "STUDENT_RESULTS_DIR", str(results_dir))
        monkeypatch.setattr(config, "OUTPUT_VISUAL_DIR", str(visual_dir))
        store = JsonAttemptStore(tmp_path / "attempts.json")

        attempt = main.process_single_sheet(str(scan_path), layout, answer_key, store)

        assert attempt.result == GradingResult(correct=2, total=3)
        assert attempt.record["candidate"]["name"] == "Kim Minji"
        assert (results_dir / "2024001_Kim Minji.csv").exists()
        assert (visual_dir / "2024001_Kim Minji_graded.png").exists()
        assert [r["id"] for r in store.load_all()] == [attempt.attempt_id]

    @pytest.mark.parametrize("key_text", ["", "Question,Answer\n1,A\n2,AB\n"])
    def test_main_when_answer_key_unreadable_then_exits_cleanly(self, tmp_path, monkeypatch, caplog, key_text):
        key_path = tmp_path / "master_answers.csv"
        key_path.write_text(key_text)
        monkeypatch.setattr(config, "MASTER_ANSWERS_PATH", str(key_path))
        monkeypatch.setattr(config, "STUDENT_RESULTS_DIR", str(tmp_path / "results"))
        monkeypatch.setattr(config, "OUTPUT_VISUAL_DIR", str(tmp_path / "visual"))

        with pytest.raises(SystemExit) as exc:
            main.main()

        assert exc.value.code == 1
        assert "Cannot proceed without the answer key and layout" in caplog.text
