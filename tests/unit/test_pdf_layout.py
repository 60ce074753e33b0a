"""
Unit tests for stepdoc/pdf/layout.py — page planning without drawing.
"""
import pytest

from conftest import BROKEN_DATA_URL, oversized_png_data_url, png_data_url, single_image_steps
from stepdoc.models import Document, ExportOptions
from stepdoc.pdf import PdfRenderer
from stepdoc.pdf.layout import (
    ImageSlotInput,
    ItemKind,
    LayoutMetrics,
    StepBlock,
    plan_pages,
    step_pages,
)
from stepdoc.pdf.themes import PageSpec
from stepdoc.progress import ExportProgress


@pytest.fixture
def page():
    return PageSpec.a4()


@pytest.fixture
def metrics():
    return LayoutMetrics()


def _block(index, images=1, aspect=4 / 3, body="Do the thing.", secondary=0):
    return StepBlock(
        index=index,
        heading=f"Step {index + 1}",
        body=body,
        images=[ImageSlotInput(key=f"step-{index + 1}-{k + 1}", aspect=aspect) for k in range(images)],
        secondary=[
            ImageSlotInput(key=f"step-{index + 1}-{k + 1}-secondary", aspect=aspect, secondary=True)
            for k in range(secondary)
        ],
    )


def _planned(document, options=None):
    renderer = PdfRenderer()
    prepared = renderer._prepare_steps(document, options or ExportOptions(), ExportProgress())
    return plan_pages([p.block for p in prepared], renderer.page, renderer.metrics)


def _pages_of_step(pages, index):
    return [p for p in pages if any(item.step_index == index for item in p.items)]


class TestPairing:
    """Test side-by-side placement of single-image steps."""

    def test_two_single_image_steps_share_a_page(self, page, metrics):
        pages = plan_pages([_block(0), _block(1)], page, metrics)
        assert len(pages) == 1
        images = pages[0].of_kind(ItemKind.IMAGE)
        assert len(images) == 2
        # Second image's origin aligns with the first
        assert images[0].rect.y == images[1].rect.y
        assert images[0].rect.x < images[1].rect.x

    def test_pair_headers_do_not_overlap(self, page, metrics):
        headers = plan_pages([_block(0), _block(1)], page, metrics)[0].headers
        assert len(headers) == 2
        assert not headers[0].rect.intersects(headers[1].rect)

    def test_pair_starts_on_page_without_images(self, page, metrics):
        pages = plan_pages([_block(i) for i in range(4)], page, metrics)
        assert [p.image_count for p in pages] == [2, 2]

    def test_step_with_secondary_is_not_paired(self, page, metrics):
        pages = plan_pages([_block(0), _block(1, secondary=1)], page, metrics)
        first_page_steps = {item.step_index for item in pages[0].headers}
        assert first_page_steps == {0, 1}
        images = pages[0].of_kind(ItemKind.IMAGE)
        # Stacked, not side by side
        assert images[0].rect.bottom <= images[1].rect.y

    def test_long_texts_are_not_paired(self, page, metrics):
        body = "\n".join(f"Line {i}" for i in range(60))
        pages = plan_pages([_block(0, body=body), _block(1, body=body)], page, metrics)
        images = [item for p in pages for item in p.of_kind(ItemKind.IMAGE)]
        assert len(images) == 2
        for image in images:
            assert image.rect.height >= metrics.min_image_height
        for planned in pages:
            for item in planned.items:
                assert item.rect.y >= page.content_top
                assert item.rect.bottom <= page.content_bottom + 0.01

    def test_failed_image_is_not_pairable(self):
        assert not _block(0, aspect=None).pairable
        assert not _block(0, images=2).pairable


class TestPageRules:
    """Test per-page constraints."""

    @pytest.mark.parametrize("count", [1, 2, 3, 5, 8])
    def test_at_most_two_images_and_no_header_overlap(self, page, metrics, count):
        pages = plan_pages([_block(i) for i in range(count)], page, metrics)
        assert sum(p.image_count for p in pages) == count
        for planned in pages:
            assert planned.image_count <= 2
            headers = planned.headers
            for i, a in enumerate(headers):
                for b in headers[i + 1:]:
                    assert not a.rect.intersects(b.rect)

    def test_items_stay_inside_content_area(self, page, metrics):
        pages = plan_pages([_block(i, aspect=0.5) for i in range(3)], page, metrics)
        for planned in pages:
            for item in planned.items:
                assert item.rect.y >= page.content_top
                assert item.rect.bottom <= page.content_bottom + 0.01

    def test_single_image_then_text_step_breaks(self, page, metrics):
        blocks = [_block(0), _block(1, images=0)]
        pages = plan_pages(blocks, page, metrics)
        assert step_pages(pages) == {0: 1, 1: 2}

    def test_multi_image_step_wraps_third_image(self, page, metrics):
        pages = plan_pages([_block(0, images=3, aspect=4.0)], page, metrics)
        assert [p.image_count for p in pages] == [2, 1]

    def test_failed_image_leaves_fixed_gap(self, page, metrics):
        pages = plan_pages([_block(0, images=1, aspect=None)], page, metrics)
        gaps = pages[0].of_kind(ItemKind.GAP)
        assert len(gaps) == 1
        assert gaps[0].rect.height == pytest.approx(metrics.failure_gap)
        assert pages[0].image_count == 0

    def test_long_text_flows_to_next_page(self, page, metrics):
        body = "\n".join(f"Line {i}" for i in range(120))
        pages = plan_pages([_block(0, images=0, body=body)], page, metrics)
        assert len(pages) >= 2
        lines = sum(len(item.lines) for p in pages for item in p.of_kind(ItemKind.TEXT))
        assert lines == 120

    def test_page_numbers_start_after_front_matter(self, page, metrics):
        pages = plan_pages([_block(0)], page, metrics, first_page_number=3)
        assert pages[0].number == 3

    def test_heading_on_first_page(self, page, metrics):
        pages = plan_pages([_block(0)], page, metrics, heading=["Procedure"])
        assert pages[0].items[0].kind is ItemKind.HEADING


class TestSecondaryPages:
    """Test dedicated pages for secondary rasters."""

    def test_secondary_gets_dedicated_page(self, page, metrics):
        pages = plan_pages([_block(0, secondary=1), _block(1, images=0)], page, metrics)
        dedicated = [p for p in pages if p.dedicated]
        assert len(dedicated) == 1
        assert [item.kind for item in dedicated[0].items] == [ItemKind.CAPTION, ItemKind.IMAGE]
        # Following step starts on a fresh page
        assert step_pages(pages)[1] == dedicated[0].number + 1

    def test_failed_secondary_leaves_gap(self, page, metrics):
        block = _block(0)
        block.secondary = [ImageSlotInput(key="x", aspect=None, secondary=True)]
        dedicated = [p for p in plan_pages([block], page, metrics) if p.dedicated][0]
        assert [item.kind for item in dedicated.items] == [ItemKind.CAPTION, ItemKind.GAP]


class TestFromDocument:
    """Test planning from prepared document steps."""

    def test_three_step_scenario(self, three_step_document):
        pages = _planned(three_step_document)

        # Text-only step has no image or gap
        step_two_items = [item for p in pages for item in p.items if item.step_index == 1]
        assert step_two_items
        assert all(item.kind not in (ItemKind.IMAGE, ItemKind.GAP) for item in step_two_items)

        # Step one's image is followed by a page break
        assert step_pages(pages)[0] < step_pages(pages)[1]

        # Step three's secondary raster sits alone on its own page
        dedicated = [p for p in pages if p.dedicated]
        assert len(dedicated) == 1
        assert {item.step_index for item in dedicated[0].items} == {2}
        assert [item.kind for item in dedicated[0].items] == [ItemKind.CAPTION, ItemKind.IMAGE]
        assert dedicated[0].items[1].key == "step-3-1-secondary"

    @pytest.mark.parametrize("count", [2, 3, 6])
    def test_single_image_documents(self, count):
        pages = _planned(single_image_steps(count))
        for planned in pages:
            assert planned.image_count <= 2
        assert sum(p.image_count for p in pages) == count
        assert all(_pages_of_step(pages, i) for i in range(count))

    def test_broken_image_becomes_gap(self):
        document = Document.from_dict({
            "id": "d",
            "title": "Broken",
            "steps": [
                {"id": "a", "description": "ok", "screenshots": [{"id": "1", "dataUrl": png_data_url(100, 100)}]},
                {"id": "b", "description": "bad", "screenshots": [{"id": "2", "dataUrl": BROKEN_DATA_URL}]},
            ],
        })
        pages = _planned(document)
        gaps = [item for p in pages for item in p.of_kind(ItemKind.GAP)]
        assert [g.key for g in gaps] == ["step-2-1"]

    def test_oversized_image_becomes_gap(self):
        document = Document.from_dict({
            "id": "d",
            "title": "Huge",
            "steps": [{"id": "a", "description": "big", "screenshots": [{"id": "1", "dataUrl": oversized_png_data_url()}]}],
        })
        pages = _planned(document)
        assert [item.key for p in pages for item in p.of_kind(ItemKind.GAP)] == ["step-1-1"]
        assert sum(p.image_count for p in pages) == 0
