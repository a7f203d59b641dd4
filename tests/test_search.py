"""Tests for the two-phase rotation search."""

import threading
import time

import pytest

from ocr_classifier.core.search import DEFAULT_CANDIDATE_ANGLES, RotationSearchEngine, SearchSettings
from ocr_classifier.errors import OCREngineError
from ocr_classifier.preprocessing import Preprocessor, rotate_image
from ocr_classifier.utils import decode_image, encode_image


def _angle_lookup(image_bytes, angles):
    """Map the exact bytes the engine receives back to the rotation angle."""
    processed, _ = Preprocessor().preprocess(decode_image(image_bytes))
    lookup = {encode_image(processed): 0}
    for angle in angles:
        lookup[encode_image(rotate_image(processed, angle))] = angle
    return lookup


def _scored_engine(fake_engine, make_region, lookup, scores, default=0.2, failing=()):
    """Engine returning one 'hello' region whose confidence depends on the angle."""
    def responder(data):
        angle = lookup[data]
        if angle in failing:
            raise OCREngineError(f"engine failed at {angle}")
        return [make_region('hello', scores.get(angle, default) * 100)]
    return fake_engine(responder)


def test_default_candidate_angles():
    """Test the fixed rotation candidates."""
    assert len(DEFAULT_CANDIDATE_ANGLES) == 19
    assert set(DEFAULT_CANDIDATE_ANGLES) == {
        350, 355, 5, 10, 80, 85, 90, 95, 100, 170, 175, 180, 185, 190, 260, 265, 270, 275, 280
    }
    assert SearchSettings().acceptance_threshold == 0.66
    assert SearchSettings().worker_count == 4


def test_too_small_image_skips_engine(fake_engine, make_region, make_image_bytes):
    """Test that a 20x500 image short-circuits without calling the engine."""
    engine = fake_engine(lambda data: [make_region()])
    result = RotationSearchEngine(engine).detect_text(make_image_bytes(20, 500))

    assert result.scale_factor == 0
    assert result.boxes == ()
    assert result.weighted_confidence == 0
    assert engine.calls == []


def test_phase1_accepted(fake_engine, make_region, noise_image_bytes):
    """Test that a convincing unrotated result ends the search."""
    engine = fake_engine(lambda data: [make_region('hello', 90)])
    result = RotationSearchEngine(engine).detect_text(noise_image_bytes)

    assert result.angle == 0
    assert result.scale_factor == 4.0
    assert result.weighted_confidence == pytest.approx(0.9)
    assert len(engine.calls) == 1


def test_early_exit_on_accepted_rotation(fake_engine, make_region, noise_image_bytes):
    """Test that the rotation crossing the threshold wins."""
    lookup = _angle_lookup(noise_image_bytes, DEFAULT_CANDIDATE_ANGLES)
    engine = _scored_engine(fake_engine, make_region, lookup, {90: 0.9})

    result = RotationSearchEngine(engine).detect_text(noise_image_bytes)

    assert result.angle == 90
    assert result.weighted_confidence == pytest.approx(0.9)
    assert result.scale_factor == 4.0


def test_no_new_angles_after_acceptance(fake_engine, make_region, noise_image_bytes):
    """Test that angles queued after the winner are not attempted."""
    angles = (90, 180, 270)
    lookup = _angle_lookup(noise_image_bytes, angles)
    engine = _scored_engine(fake_engine, make_region, lookup, {90: 0.9})
    settings = SearchSettings(candidate_angles=angles, worker_count=1)

    result = RotationSearchEngine(engine, settings=settings).detect_text(noise_image_bytes)

    assert result.angle == 90
    assert [lookup[data] for data in engine.calls] == [0, 90]


def test_best_result_when_nothing_accepted(fake_engine, make_region, noise_image_bytes):
    """Test that the highest weighted confidence wins when no angle is accepted."""
    lookup = _angle_lookup(noise_image_bytes, DEFAULT_CANDIDATE_ANGLES)
    engine = _scored_engine(fake_engine, make_region, lookup, {0: 0.3, 180: 0.5})

    result = RotationSearchEngine(engine).detect_text(noise_image_bytes)

    assert result.angle == 180
    assert result.weighted_confidence == pytest.approx(0.5)
    assert len(engine.calls) == 1 + len(DEFAULT_CANDIDATE_ANGLES)


def test_phase1_kept_when_rotations_are_worse(fake_engine, make_region, noise_image_bytes):
    """Test that the unrotated result is kept if no rotation beats it."""
    lookup = _angle_lookup(noise_image_bytes, DEFAULT_CANDIDATE_ANGLES)
    engine = _scored_engine(fake_engine, make_region, lookup, {0: 0.5})

    result = RotationSearchEngine(engine).detect_text(noise_image_bytes)

    assert result.angle == 0
    assert result.weighted_confidence == pytest.approx(0.5)


def test_rotation_errors_are_ignored(fake_engine, make_region, noise_image_bytes):
    """Test that a failing angle does not abort the search."""
    lookup = _angle_lookup(noise_image_bytes, DEFAULT_CANDIDATE_ANGLES)
    engine = _scored_engine(
        fake_engine, make_region, lookup, {90: 0.9, 270: 0.5}, default=0.1, failing=(90,)
    )

    result = RotationSearchEngine(engine).detect_text(noise_image_bytes)

    assert result.angle == 270
    assert result.weighted_confidence == pytest.approx(0.5)


def test_tie_keeps_first_seen(fake_engine, make_region, noise_image_bytes):
    """Test strictly-greater selection with a single worker."""
    angles = (180, 270)
    lookup = _angle_lookup(noise_image_bytes, angles)
    engine = _scored_engine(fake_engine, make_region, lookup, {0: 0.1, 180: 0.5, 270: 0.5})
    settings = SearchSettings(candidate_angles=angles, worker_count=1)

    result = RotationSearchEngine(engine, settings=settings).detect_text(noise_image_bytes)

    assert result.angle == 180


def test_empty_candidate_set_returns_phase1(fake_engine, make_region, noise_image_bytes):
    """Test that a search without candidates returns the unrotated result."""
    engine = fake_engine(lambda data: [make_region('hello', 20)])
    settings = SearchSettings(candidate_angles=())

    result = RotationSearchEngine(engine, settings=settings).detect_text(noise_image_bytes)

    assert result.angle == 0
    assert len(engine.calls) == 1


def test_undecodable_bytes_fall_back_to_raw_detection(fake_engine, make_region):
    """Test that undecodable input goes straight to the engine once."""
    raw = b'definitely not an image'
    engine = fake_engine(lambda data: [make_region('hello', 30)])

    result = RotationSearchEngine(engine).detect_text(raw)

    assert engine.calls == [raw]
    assert result.angle == 0
    assert result.scale_factor == 0
    assert result.weighted_confidence == pytest.approx(0.3)


def test_fallback_engine_error_propagates(fake_engine):
    """Test that an engine failure on the raw fallback is raised."""
    def responder(data):
        raise OCREngineError("cannot read image")

    with pytest.raises(OCREngineError):
        RotationSearchEngine(fake_engine(responder)).detect_text(b'garbage')


def test_phase1_engine_error_propagates(fake_engine, noise_image_bytes):
    """Test that an engine failure in phase 1 is raised."""
    def responder(data):
        raise OCREngineError("engine crashed")

    engine = fake_engine(responder)
    with pytest.raises(OCREngineError):
        RotationSearchEngine(engine).detect_text(noise_image_bytes)
    assert len(engine.calls) == 1


def test_confidence_bounds_hold_for_every_attempt(fake_engine, make_region, noise_image_bytes):
    """Test bounds when the engine reports scores above 100."""
    engine = fake_engine(lambda data: [make_region('hello', 250), make_region('ok', 50)])

    result = RotationSearchEngine(engine).detect_text(noise_image_bytes)

    assert 0.0 <= result.mean_confidence <= 1.0
    assert 0.0 <= result.weighted_confidence <= 1.0
    assert result.token_count == 7


@pytest.mark.parametrize("kwargs", [
    {'candidate_angles': (0, 90)},
    {'candidate_angles': (360,)},
    {'worker_count': 0},
    {'acceptance_threshold': 1.5},
])
def test_invalid_settings(kwargs):
    """Test settings validation."""
    with pytest.raises(ValueError):
        SearchSettings(**kwargs)


def test_settings_from_config():
    """Test building settings from a config section."""
    settings = SearchSettings.from_config({
        'acceptance_threshold': 0.5,
        'candidate_angles': [90, 270],
        'worker_count': 2,
    })

    assert settings == SearchSettings(acceptance_threshold=0.5, candidate_angles=(90, 270), worker_count=2)
    assert SearchSettings.from_config({}) == SearchSettings()


def test_early_exit_leaves_no_rotation_threads(fake_engine, make_region, noise_image_bytes):
    """Test that slow rotations finish in the background and their threads exit."""
    angles = (90, 180, 270)
    lookup = _angle_lookup(noise_image_bytes, angles)
    release = threading.Event()
    finished = []

    def responder(data):
        angle = lookup[data]
        if angle == 90:
            return [make_region('hello', 90)]
        if angle in (180, 270):
            release.wait(5)
            finished.append(angle)
        return [make_region('hello', 10)]

    settings = SearchSettings(candidate_angles=angles, worker_count=3)
    result = RotationSearchEngine(fake_engine(responder), settings=settings).detect_text(noise_image_bytes)

    assert result.angle == 90
    assert finished == []

    release.set()
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        if not any(t.name.startswith('rotation') for t in threading.enumerate()):
            break
        time.sleep(0.01)

    assert not any(t.name.startswith('rotation') for t in threading.enumerate())
    assert sorted(finished) == [180, 270]
