"""
Tests for collectors and the collector registry
"""

import pytest

from einlass.collectors import (
    CollectorRegistry, DirectoryCollector, PasteCollector, SelectionCollector
)
from einlass.core.context import Context
from einlass.core.status import FileStatus


def names(files):
    return [file.name for file in files]


class TestDirectoryCollector:
    """Recursive, sorted collection of dropped paths"""

    def test_walks_recursively_in_sorted_order(self, sample_tree):
        context = Context()
        collector = context.get_directory_collector()

        result = collector.collect_paths([sample_tree])

        assert names(result.admitted) == ["a.jpg", "b.png", "notes.txt", "c.gif", "d.jpg"]
        assert result.rejected == []
        assert result.stopped is False
        assert context.stat.total() == 5

    def test_include_hidden(self, sample_tree):
        collector = DirectoryCollector(Context(), include_hidden=True)
        found = names(collector.walk([sample_tree]))
        assert ".hidden" in found

    def test_filters_apply(self, sample_tree):
        context = Context(accept="jpg,png")
        result = context.get_directory_collector().collect_paths([sample_tree])

        assert names(result.admitted) == ["a.jpg", "b.png", "d.jpg"]
        assert names(result.rejected) == ["notes.txt", "c.gif"]

    def test_capacity_stops_traversal(self, sample_tree):
        context = Context(queue_capacity=2)
        result = context.get_directory_collector().collect_paths([sample_tree])

        assert names(result.admitted) == ["a.jpg", "b.png"]
        assert result.rejected == []
        assert result.stopped is True

    def test_single_mode_takes_first_file(self, sample_tree):
        context = Context(multiple=False)
        result = context.get_directory_collector().collect_paths([sample_tree])

        assert names(result.admitted) == ["a.jpg"]
        assert result.stopped is True
        assert context.stat.total() == 1

    def test_plain_file_and_missing_path(self, sample_tree, tmp_path):
        context = Context()
        result = context.get_directory_collector().collect_paths(
            [sample_tree / "b.png", tmp_path / "missing.bin"]
        )
        assert names(result.admitted) == ["b.png"]

    def test_collector_is_created_once(self):
        context = Context()
        assert context.get_directory_collector() is context.get_directory_collector()
        assert len(context.registry) == 1


class TestSelectionCollector:
    """Explicit file selection"""

    def test_select(self, sample_tree):
        context = Context()
        collector = context.get_selection_collector()

        result = collector.select([sample_tree / "notes.txt", sample_tree / "nested", sample_tree / "a.jpg"])

        assert isinstance(collector, SelectionCollector)
        assert names(result.admitted) == ["notes.txt", "a.jpg"]
        assert all(file.status == FileStatus.QUEUED for file in result.admitted)


class TestPasteCollector:
    """Clipboard blobs"""

    def test_filename_hint_goes_to_first_item(self):
        context = Context()
        collector = context.get_paste_collector()

        result = collector.paste([(b"png-bytes", "image/png"), (b"more", "image/png")],
                                 filename="screenshot.png")

        assert isinstance(collector, PasteCollector)
        assert names(result.admitted) == ["screenshot.png", "pasted-1.png"]
        assert result.admitted[0].size == len(b"png-bytes")
        assert result.admitted[0].mime_type == "image/png"

    def test_generated_names_keep_counting(self):
        collector = Context().get_paste_collector()

        collector.paste([(b"a", "text/plain")])
        result = collector.paste([(b"b", None)])

        assert names(result.admitted) == ["pasted-2"]

    def test_accept_applies_to_generated_extension(self):
        context = Context(accept="png")
        result = context.get_paste_collector().paste([(b"x", "image/png"), (b"y", None)])

        assert names(result.admitted) == ["pasted-1.png"]
        assert names(result.rejected) == ["pasted-2"]


class TestCollectorRegistry:
    """Routing one drop across several contexts"""

    def test_register_and_unregister(self):
        registry = CollectorRegistry()
        collector = DirectoryCollector(Context(registry=registry))

        assert registry.register(collector) is False
        assert registry.unregister(collector) is True
        assert registry.unregister(collector) is False
        assert len(registry) == 0

    def test_deliver_without_collectors(self, sample_tree):
        assert CollectorRegistry().deliver([sample_tree]) == {}

    def test_first_admitting_collector_takes_each_file(self, sample_tree):
        registry = CollectorRegistry()
        images = Context(registry=registry, accept="jpg,png")
        everything = Context(registry=registry)
        image_collector = images.get_directory_collector()
        other_collector = everything.get_directory_collector()

        results = registry.deliver([sample_tree])

        assert names(results[id(image_collector)].admitted) == ["a.jpg", "b.png", "d.jpg"]
        assert names(results[id(other_collector)].admitted) == ["notes.txt", "c.gif"]
        assert images.stat.total() == 3
        assert everything.stat.total() == 2

    def test_single_mode_collector_retires(self, sample_tree):
        registry = CollectorRegistry()
        single = Context(registry=registry, multiple=False)
        rest = Context(registry=registry)
        single_collector = single.get_directory_collector()
        rest.get_directory_collector()

        result = single_collector.drop([sample_tree])

        assert names(result.admitted) == ["a.jpg"]
        assert result.stopped is True
        assert rest.stat.total() == 4

    def test_delivery_ends_when_every_collector_stops(self, sample_tree):
        registry = CollectorRegistry()
        context = Context(registry=registry, queue_capacity=1)
        collector = context.get_directory_collector()

        result = collector.drop([sample_tree])

        assert names(result.admitted) == ["a.jpg"]
        assert result.stopped is True

    @pytest.mark.asyncio
    async def test_close_unregisters_collectors(self):
        registry = CollectorRegistry()
        context = Context(registry=registry)
        context.get_directory_collector()

        await context.close()

        assert len(registry) == 0
