import pytest

from app_explorer.config import MAX_ELEMENTS, CompressorConfig, ExplorationConfig


class TestExplorationConfig:
    def test_defaults(self) -> None:
        config = ExplorationConfig()

        assert config.steps == 20
        assert config.goal == "Explore the app systematically"
        assert config.enable_verification is False
        assert config.max_retries == 2
        assert CompressorConfig().max_elements == MAX_ELEMENTS == 50

    def test_max_attempts(self) -> None:
        assert ExplorationConfig(max_retries=2).max_attempts == 1
        assert ExplorationConfig(enable_verification=True, max_retries=2).max_attempts == 3
        assert ExplorationConfig(enable_verification=True, max_retries=0).max_attempts == 1

    @pytest.mark.parametrize("kwargs", [{"steps": 0}, {"max_retries": -1}])
    def test_validation(self, kwargs) -> None:
        with pytest.raises(ValueError):
            ExplorationConfig(**kwargs)

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("EXPLORER_STEPS", "7")
        monkeypatch.setenv("EXPLORER_VERIFY", "yes")
        monkeypatch.setenv("EXPLORER_GOAL", "Reach checkout")
        monkeypatch.delenv("EXPLORER_FIXTURE", raising=False)

        config = ExplorationConfig.from_env(max_retries=4, goal=None)

        assert config.steps == 7
        assert config.enable_verification is True
        assert config.goal == "Reach checkout"
        assert config.max_retries == 4
        assert config.fixture_path is None
