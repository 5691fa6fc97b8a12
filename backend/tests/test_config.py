import logging

from formengine.config import Settings, setup_logging


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("FORMS_DEFAULT_FORM_TITLE", "Survey")
    monkeypatch.setenv("FORMS_CONDITIONAL_REFERENCE_POLICY", "reject")

    settings = Settings()
    assert settings.DEFAULT_FORM_TITLE == "Survey"
    assert settings.CONDITIONAL_REFERENCE_POLICY == "reject"
    assert settings.MAX_UPLOAD_SIZE == 1073741824


def test_setup_logging_is_idempotent():
    logger = setup_logging("DEBUG")
    handlers = list(logger.handlers)
    assert setup_logging("DEBUG").handlers == handlers
    assert logger.level == logging.DEBUG
