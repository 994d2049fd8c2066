import pytest

from tests.conftest import make_catalog, make_format, raw_format, SAMPLE_INFO
from ytmux.core.errors import FormatNotFoundError
from ytmux.models.internal import Catalog
from ytmux.services.planner import AcquisitionPlanner


@pytest.fixture
def planner():
    return AcquisitionPlanner(rank_audio=False)


def test_video_only_pairs_with_first_audio(planner):
    plan = planner.plan("137", make_catalog())

    assert plan.video_id == "137"
    assert plan.audio_id == "140"
    assert plan.needs_mux


def test_combined_format_fetches_single_stream(planner):
    plan = planner.plan("22", make_catalog())

    assert plan.video_id == "22"
    assert plan.audio_id is None
    assert not plan.needs_mux


def test_audio_only_selection_uses_video_slot(planner):
    plan = planner.plan("251", make_catalog())

    assert plan.video_id == "251"
    assert plan.audio_id is None
    assert plan.selected.is_audio_only


def test_video_only_without_audio_degrades(planner):
    catalog = Catalog(
        title="No audio",
        formats=[
            make_format("sb0", ext="mhtml", vcodec="none", acodec="none", height=None),
            make_format("137", acodec="none", height=1080),
        ],
    )

    plan = planner.plan("137", catalog)

    assert plan.video_id == "137"
    assert plan.audio_id is None


def test_storyboard_is_never_picked_as_audio(planner):
    catalog = Catalog(
        title="t",
        formats=[
            make_format("sb0", ext="mhtml", vcodec="none", acodec="none", height=None),
            make_format("137", acodec="none", height=1080),
            make_format("140", ext="m4a", vcodec="none", height=None),
        ],
    )

    assert planner.plan("137", catalog).audio_id == "140"


def test_unknown_format_raises(planner):
    with pytest.raises(FormatNotFoundError) as excinfo:
        planner.plan("999", make_catalog())

    assert excinfo.value.format_id == "999"
    assert excinfo.value.status_code == 404


def test_ranked_audio_picks_highest_bitrate():
    plan = AcquisitionPlanner(rank_audio=True).plan("137", make_catalog())

    assert plan.audio_id == "251"


def test_ranked_audio_keeps_catalog_order_on_ties():
    info = {
        "title": "t",
        "formats": [
            raw_format("a1", vcodec="none", height=None, abr=128.0),
            raw_format("a2", vcodec="none", height=None, abr=128.0),
            raw_format("137", acodec="none", height=1080),
        ],
    }

    plan = AcquisitionPlanner(rank_audio=True).plan("137", make_catalog(info))

    assert plan.audio_id == "a1"


def test_plan_is_independent_of_display_order(planner):
    reordered = dict(SAMPLE_INFO, formats=list(reversed(SAMPLE_INFO["formats"])))

    assert planner.plan("137", make_catalog(reordered)).audio_id == "251"
