"""
Tests for the admission pipeline and its built-in policies
"""

import pytest

from einlass.core.admission import (
    AdmissionPipeline, capacity_constraint, duplicate_filter, extension_filter,
    format_size, parse_size, size_filter
)
from einlass.core.errors import (
    ConfigurationError, DuplicateError, ErrorCode, FileExtensionError,
    FileSizeError, FilterError, QueueLimitError
)
from einlass.core.file import UploadFile
from einlass.core.stats import QueueStatistics


class TestSizes:
    """Size limit parsing and formatting"""

    @pytest.mark.parametrize("value,expected", [
        ("512", 512),
        ("2m", 2097152),
        ("2MB", 2097152),
        ("1.5k", 1536),
        ("10kb", 10240),
        ("1g", 1073741824),
        (4096, 4096),
        (None, None),
    ])
    def test_parse_size(self, value, expected):
        assert parse_size(value) == expected

    @pytest.mark.parametrize("value", ["abc", "2x", "-5m", "1..5m", True])
    def test_malformed_size_is_a_configuration_error(self, value):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_size(value)
        assert exc_info.value.error_code == ErrorCode.INVALID_SIZE_LIMIT

    @pytest.mark.parametrize("value,expected", [
        (500, "500B"),
        (1536, "2KB"),
        (1600000, "1.5MB"),
        (3 * 1048576, "3MB"),
        (1288490189, "1.2GB"),
    ])
    def test_format_size(self, value, expected):
        assert format_size(value) == expected


class TestFilters:
    """Filter chain semantics"""

    def test_no_policies_admits(self):
        pipeline = AdmissionPipeline()
        assert pipeline.evaluate(UploadFile("a.txt", 1)) is None
        assert pipeline.is_limit() is False

    def test_fail_fast_in_registration_order(self):
        pipeline = AdmissionPipeline()
        calls = []

        def first(file):
            calls.append("first")
            return "first says no"

        def second(file):
            calls.append("second")
            return None

        pipeline.add_filter(first).add_filter(second)
        error = pipeline.evaluate(UploadFile("a.txt", 1))

        assert isinstance(error, FilterError)
        assert error.reason == "first says no"
        assert calls == ["first"]

    def test_passing_values(self):
        pipeline = AdmissionPipeline()
        pipeline.add_filter(lambda file: None).add_filter(lambda file: True)
        assert pipeline.evaluate(UploadFile("a.txt", 1)) is None

    def test_unrecognised_values_pass(self):
        pipeline = AdmissionPipeline()
        pipeline.add_filter(lambda file: 0).add_filter(lambda file: {})
        assert pipeline.evaluate(UploadFile("a.txt", 1)) is None

    def test_false_is_a_generic_rejection(self):
        def only_small(file):
            return False

        pipeline = AdmissionPipeline().add_filter(only_small)
        error = pipeline.evaluate(UploadFile("a.txt", 1))

        assert error.error_code == ErrorCode.FILTER_REJECTED
        assert "only_small" in error.reason

    def test_typed_error_is_used_as_is(self):
        file = UploadFile("a.txt", 1)
        typed = FileSizeError(file, "too big")
        pipeline = AdmissionPipeline().add_filter(lambda f: typed)

        assert pipeline.evaluate(file) is typed

    def test_raising_filter_is_a_rejection(self):
        def broken(file):
            raise RuntimeError("filter exploded")

        pipeline = AdmissionPipeline().add_filter(broken)
        error = pipeline.evaluate(UploadFile("a.txt", 1))

        assert isinstance(error, FilterError)
        assert error.reason == "filter exploded"
        assert isinstance(error.cause, RuntimeError)

    def test_returned_exception_is_wrapped(self):
        pipeline = AdmissionPipeline().add_filter(lambda file: ValueError("bad name"))
        error = pipeline.evaluate(UploadFile("a.txt", 1))

        assert isinstance(error, FilterError)
        assert error.reason == "bad name"

    def test_remove_filter(self):
        reject = lambda file: "no"  # noqa: E731
        pipeline = AdmissionPipeline().add_filter(reject)
        pipeline.remove_filter(reject)

        assert pipeline.evaluate(UploadFile("a.txt", 1)) is None


class TestConstraints:
    """Queue-wide constraints"""

    def test_constraint_blocks_before_filters(self):
        calls = []
        pipeline = AdmissionPipeline()
        pipeline.add_constraint(lambda: True)
        pipeline.add_filter(lambda file: calls.append(file))

        error = pipeline.evaluate(UploadFile("a.txt", 1))

        assert isinstance(error, QueueLimitError)
        assert error.error_code == ErrorCode.QUEUE_LIMIT_EXCEEDED
        assert calls == []
        assert pipeline.is_limit() is True

    def test_any_constraint_holding_is_enough(self):
        pipeline = AdmissionPipeline()
        pipeline.add_constraint(lambda: False).add_constraint(lambda: True)
        assert pipeline.is_limit() is True

    def test_failing_constraint_counts_as_holding(self):
        def broken():
            raise RuntimeError("boom")

        pipeline = AdmissionPipeline().add_constraint(broken)
        assert pipeline.is_limit() is True

    def test_capacity_constraint(self):
        stat = QueueStatistics()
        constraint = capacity_constraint(stat, 2)

        stat.add(UploadFile("a.txt", 1))
        assert constraint() is False
        stat.add(UploadFile("b.txt", 1))
        assert constraint() is True

    def test_unlimited_capacity_installs_nothing(self):
        assert capacity_constraint(QueueStatistics(), 0) is None


class TestBuiltinFilters:
    """Extension, size and duplicate filters"""

    def test_extension_filter(self):
        accept = extension_filter([["jpg", "png"]])

        assert accept(UploadFile("photo.jpg", 1)) is None
        assert accept(UploadFile("photo.png", 1)) is None
        error = accept(UploadFile("anim.gif", 1))
        assert isinstance(error, FileExtensionError)
        assert error.reason == 'extension "gif" is not allowed'

    def test_extension_filter_matches_any_group(self):
        accept = extension_filter([["jpg"], ["pdf", "doc"]])
        assert accept(UploadFile("paper.pdf", 1)) is None

    def test_extension_filter_is_case_sensitive(self):
        accept = extension_filter([["jpg"]])
        assert isinstance(accept(UploadFile("PHOTO.JPG", 1)), FileExtensionError)

    def test_extension_filter_rejects_missing_extension(self):
        accept = extension_filter([["jpg"]])
        assert isinstance(accept(UploadFile("README", 1)), FileExtensionError)

    def test_no_groups_installs_nothing(self):
        assert extension_filter([]) is None
        assert extension_filter([[]]) is None

    def test_size_filter(self):
        limit = size_filter("2m")

        assert limit(UploadFile("small.bin", 2097152)) is None
        error = limit(UploadFile("big.bin", 3 * 1048576))
        assert isinstance(error, FileSizeError)
        assert error.reason == "file size 3MB is greater than limit 2MB"

    def test_no_size_limit_installs_nothing(self):
        assert size_filter(None) is None
        assert size_filter(0) is None

    def test_duplicate_filter(self):
        stat = QueueStatistics()
        stat.add(UploadFile("report.pdf", 100))
        prevent = duplicate_filter(stat)

        assert isinstance(prevent(UploadFile("report.pdf", 100)), DuplicateError)
        assert prevent(UploadFile("report.pdf", 101)) is None
        assert prevent(UploadFile("other.pdf", 100)) is None

    def test_error_to_dict(self):
        file = UploadFile("anim.gif", 1)
        data = extension_filter([["jpg"]])(file).to_dict()

        assert data["error_code"] == "EL1004"
        assert data["domain"] == "admission"
        assert data["context"] == {"file": "anim.gif"}
        assert data["resolution_hint"]
