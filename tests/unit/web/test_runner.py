"""Tests for the uvicorn launcher."""

from uvicorn.config import LOGGING_CONFIG

from threadline.app import App
from threadline.config import Config
from threadline.web import runner


class TestBuildLogConfig:
    def test_formats_without_touching_default(self):
        default_fmt = LOGGING_CONFIG["formatters"]["access"]["fmt"]

        log_config = runner.build_log_config(debug=False)

        assert log_config["formatters"]["access"]["fmt"] == '%(asctime)s - "%(request_line)s" %(status_code)s'
        assert LOGGING_CONFIG["formatters"]["access"]["fmt"] == default_fmt

    def test_debug_level(self):
        assert runner.build_log_config(debug=True)["loggers"]["uvicorn"]["level"] == "DEBUG"
        assert runner.build_log_config(debug=False)["loggers"]["uvicorn"]["level"] == LOGGING_CONFIG["loggers"]["uvicorn"]["level"]


class TestRunServer:
    def test_passes_config_to_uvicorn(self, monkeypatch):
        calls = []
        monkeypatch.setattr(runner.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
        config = Config(database_url="memory://", host="0.0.0.0", port=9001, debug=True)

        runner.run_server(App(config), config)

        app, kwargs = calls[0]
        assert app.title == "Threadline API"
        assert (kwargs["host"], kwargs["port"], kwargs["log_level"]) == ("0.0.0.0", 9001, "debug")
        assert kwargs["access_log"] is True
