"""
End-to-end tests for the curation pipeline.

© 2026 MBP LLC. All rights reserved.
"""

import asyncio
import threading

import pytest

from dylib_curator.core.exceptions import EmptySelectionError, ExtractionError
from dylib_curator.core.extractor import BundleExtractor
from dylib_curator.core.pipeline import CurationPipeline
from dylib_curator.core.session import SessionState


@pytest.fixture
def revealed():
    return []


@pytest.fixture
def pipeline(settings, scenario_bundle, revealed):
    bundles = {"com.example.sample": scenario_bundle}
    return CurationPipeline(
        resolve_bundle_directory=bundles.get,
        reveal_in_file_system=revealed.append,
        settings=settings,
    )


class TestScenarios:
    """Extraction, curation and reconcile from start to finish."""

    @pytest.mark.asyncio
    async def test_keep_one_library(self, pipeline, scratch_root, revealed):
        """Scenario A."""
        session = await pipeline.open_session("com.example.sample", "Sample")

        assert [lib.name for lib in session.extracted_libraries] == ["libA.dylib", "libB.dylib"]
        assert {p.name for p in session.scratch_directory.iterdir()} == {
            "libA.dylib", "libB.dylib"
        }

        lib_a = session.extracted_libraries[0]
        session.deselect_all()
        session.toggle(lib_a.identity)
        directory = pipeline.commit(session)

        assert directory == scratch_root / "Sample"
        assert [p.name for p in directory.iterdir()] == ["libA.dylib"]
        assert revealed == [directory]

    @pytest.mark.asyncio
    async def test_cancel_before_any_toggle(self, pipeline, revealed):
        """Scenario B."""
        session = await pipeline.open_session("com.example.sample", "Sample")
        pipeline.cancel(session)

        assert session.state is SessionState.ABORTED
        assert not session.scratch_directory.exists()
        assert revealed == []

    @pytest.mark.asyncio
    async def test_no_libraries(self, settings, make_bundle, scratch_root):
        """Scenario C."""
        bundle = make_bundle({"Info.plist": b"p", "readme.txt": b"r", "data.bin": b"d"},
                             name="Plain.app")
        pipeline = CurationPipeline(settings=settings)

        session = await pipeline.open_session_for_bundle(bundle, "Plain")

        assert session is None
        directory = scratch_root / "Plain"
        assert not directory.exists() or list(directory.iterdir()) == []
        assert pipeline.stats['empty_results'] == 1

    @pytest.mark.asyncio
    async def test_empty_commit_leaves_session_open(self, pipeline, revealed):
        """Test that committing an empty selection keeps the session open."""
        session = await pipeline.open_session("com.example.sample", "Sample")
        session.deselect_all()

        with pytest.raises(EmptySelectionError):
            pipeline.commit(session)

        assert session.is_open
        assert revealed == []

    @pytest.mark.asyncio
    async def test_display_name_is_sanitized(self, pipeline, scratch_root):
        """Test that separators become hyphens in the scratch folder name."""
        session = await pipeline.open_session("com.example.sample", "My/App: Pro")

        assert session.display_name == "My-App_ Pro"
        assert session.scratch_directory == scratch_root / "My-App_ Pro"


class TestFailures:
    """Hard failures and cancellation."""

    @pytest.mark.asyncio
    async def test_unresolvable_application(self, pipeline):
        """Test that an unknown application identifier is a hard failure."""
        with pytest.raises(ExtractionError):
            await pipeline.open_session("com.example.unknown", "Unknown")
        assert pipeline.stats['failures'] == 1

    @pytest.mark.asyncio
    async def test_missing_bundle_leaves_nothing_behind(self, settings, tmp_path, scratch_root):
        """Test that a missing bundle leaves no scratch directory."""
        pipeline = CurationPipeline(settings=settings)

        with pytest.raises(ExtractionError):
            await pipeline.open_session_for_bundle(tmp_path / "gone.app", "Gone")
        assert not (scratch_root / "Gone").exists()

    @pytest.mark.asyncio
    async def test_concurrent_extraction_into_same_directory_is_refused(
            self, settings, scenario_bundle):
        """Test that a second extraction into a busy directory is refused."""
        started = threading.Event()
        release = threading.Event()

        class SlowExtractor(BundleExtractor):
            def extract_sync(self, *args, **kwargs):
                started.set()
                release.wait(timeout=5)
                return super().extract_sync(*args, **kwargs)

        pipeline = CurationPipeline(
            settings=settings,
            extractor=SlowExtractor(settings.scratch_root),
        )

        first = asyncio.create_task(pipeline.open_session_for_bundle(scenario_bundle, "Sample"))
        while not started.is_set():
            await asyncio.sleep(0.01)

        with pytest.raises(ExtractionError, match="already in use"):
            await pipeline.open_session_for_bundle(scenario_bundle, "Sample")

        release.set()
        session = await first
        assert session.total_count == 2

    @pytest.mark.asyncio
    async def test_different_applications_extract_concurrently(self, settings, make_bundle):
        """Test that separate applications extract side by side."""
        first = make_bundle({"libone.dylib": b"1"}, name="One.app")
        second = make_bundle({"libtwo.dylib": b"2"}, name="Two.app")
        pipeline = CurationPipeline(settings=settings)

        one, two = await asyncio.gather(
            pipeline.open_session_for_bundle(first, "One"),
            pipeline.open_session_for_bundle(second, "Two"),
        )

        assert [lib.name for lib in one.extracted_libraries] == ["libone.dylib"]
        assert [lib.name for lib in two.extracted_libraries] == ["libtwo.dylib"]
        assert one.scratch_directory != two.scratch_directory

    @pytest.mark.asyncio
    async def test_cancelled_pipeline_discards_staging(self, settings, make_bundle, scratch_root):
        """Test that cancelling the pipeline removes partial staging."""
        bundle = make_bundle({f"lib{i:03}.dylib": b"x" * 1024 for i in range(200)})
        pipeline = CurationPipeline(settings=settings)

        task = asyncio.create_task(pipeline.open_session_for_bundle(bundle, "Big"))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert not (scratch_root / "Big").exists()

        # The directory is released for a retry
        session = await pipeline.open_session_for_bundle(bundle, "Big")
        assert session.total_count == 200


class TestScratchDirectoryClaim:
    """An open session owns its scratch directory until commit or cancel."""

    @pytest.mark.asyncio
    async def test_failed_same_name_extraction_keeps_open_session_files(
            self, pipeline, tmp_path, revealed):
        """Test that a refused extraction never deletes an open session's files."""
        session = await pipeline.open_session("com.example.sample", "Sample")
        staged = {p.name for p in session.scratch_directory.iterdir()}

        with pytest.raises(ExtractionError, match="already in use"):
            await pipeline.open_session_for_bundle(tmp_path / "gone.app", "Sample")

        assert session.scratch_directory.is_dir()
        assert {p.name for p in session.scratch_directory.iterdir()} == staged
        assert pipeline.stats['failures'] == 0

        directory = pipeline.commit(session)
        assert sorted(p.name for p in directory.iterdir()) == ["libA.dylib", "libB.dylib"]
        assert revealed == [directory]

    @pytest.mark.asyncio
    async def test_same_name_extraction_waits_for_commit(self, settings, make_bundle):
        """Test that a stale commit cannot touch a newer extraction's files."""
        first_bundle = make_bundle({"libA.dylib": b"a", "libB.dylib": b"b"}, name="First.app")
        second_bundle = make_bundle({"libA.dylib": b"new a", "libC.dylib": b"c"},
                                    name="Second.app")
        pipeline = CurationPipeline(settings=settings)

        first = await pipeline.open_session_for_bundle(first_bundle, "Sample")
        with pytest.raises(ExtractionError, match="already in use"):
            await pipeline.open_session_for_bundle(second_bundle, "Sample")

        first.deselect_all()
        first.toggle(first.extracted_libraries[0].identity)
        pipeline.commit(first)

        second = await pipeline.open_session_for_bundle(second_bundle, "Sample")
        assert [lib.name for lib in second.extracted_libraries] == ["libA.dylib", "libC.dylib"]

        # The first session is closed; repeating its commit changes nothing
        assert pipeline.commit(first) is None
        assert sorted(p.name for p in second.scratch_directory.iterdir()) == [
            "libA.dylib", "libC.dylib"
        ]
        assert (second.scratch_directory / "libA.dylib").read_bytes() == b"new a"

    @pytest.mark.asyncio
    async def test_cancel_releases_directory(self, pipeline):
        """Test that cancelling a session lets the same name be extracted again."""
        first = await pipeline.open_session("com.example.sample", "Sample")
        pipeline.cancel(first)

        second = await pipeline.open_session("com.example.sample", "Sample")

        assert second.is_open
        assert second.total_count == 2

    @pytest.mark.asyncio
    async def test_empty_selection_keeps_directory_claimed(self, pipeline):
        """Test that a rejected empty commit does not release the directory."""
        session = await pipeline.open_session("com.example.sample", "Sample")
        session.deselect_all()

        with pytest.raises(EmptySelectionError):
            pipeline.commit(session)
        with pytest.raises(ExtractionError, match="already in use"):
            await pipeline.open_session("com.example.sample", "Sample")

        pipeline.cancel(session)
        assert (await pipeline.open_session("com.example.sample", "Sample")).is_open

    @pytest.mark.asyncio
    async def test_empty_result_releases_directory(self, settings, make_bundle):
        """Test that a bundle without libraries does not hold its directory."""
        bundle = make_bundle({"readme.txt": b"r"}, name="Plain.app")
        pipeline = CurationPipeline(settings=settings)

        assert await pipeline.open_session_for_bundle(bundle, "Plain") is None
        assert await pipeline.open_session_for_bundle(bundle, "Plain") is None
        assert pipeline.stats['empty_results'] == 2
