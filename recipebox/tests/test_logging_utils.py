"""Tests for service layer structured logging."""

import logging

from recipebox.services import recipe_service
from recipebox.services.exceptions import RecipeNotFound, ValidationError
from recipebox.services.logging_utils import get_service_logger, log_operation

from conftest import make_recipe


class TestLoggingUtilities:
    """Tests for logging utility functions."""

    def test_get_service_logger_returns_logger(self):
        logger = get_service_logger("test_module")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "recipebox.services.test_module"

    def test_get_service_logger_extracts_module_name(self):
        logger = get_service_logger("recipebox.services.merge_service")
        assert logger.name == "recipebox.services.merge_service"

    def test_log_operation_logs_at_info_level(self, caplog):
        logger = get_service_logger("test")

        with caplog.at_level(logging.INFO):
            log_operation(logger, operation="test_op", outcome="success", recipe_id=123)

        assert "test_op: success" in caplog.text
        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.operation == "test_op"
        assert record.outcome == "success"
        assert record.recipe_id == 123

    def test_log_operation_custom_level(self, caplog):
        logger = get_service_logger("test")

        with caplog.at_level(logging.DEBUG):
            log_operation(logger, operation="test_op", outcome="error", level=logging.ERROR)

        assert caplog.records[-1].levelno == logging.ERROR


class TestServiceLogging:
    """Service operations emit one structured record per outcome."""

    def test_validation_failure_logged_as_warning(self, collection, caplog):
        with caplog.at_level(logging.WARNING, logger="recipebox.services"):
            try:
                recipe_service.add_recipe(collection, make_recipe(""))
            except ValidationError:
                pass

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.outcome == "validation_failed"
        assert any("Recipe Name" in e for e in record.errors)

    def test_delete_logs_vocabulary_counts(self, collection, caplog):
        recipe_id = recipe_service.add_recipe(collection, make_recipe("Toast", ["Bread"], ["quick"]))

        with caplog.at_level(logging.INFO, logger="recipebox.services"):
            recipe_service.delete_recipe(collection, recipe_id)

        record = [r for r in caplog.records if getattr(r, "operation", None) == "delete_recipe"][-1]
        assert record.ingredients_removed == 1
        assert record.tags_removed == 1

    def test_not_found_is_not_logged_as_error(self, collection, caplog):
        with caplog.at_level(logging.INFO, logger="recipebox.services"):
            try:
                recipe_service.delete_recipe(collection, 5)
            except RecipeNotFound:
                pass

        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
