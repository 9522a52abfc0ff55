"""Pytest configuration and fixtures for DeskCrew tests."""

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from deskcrew.config import Settings, reset_settings

PROVIDER_ENV_VARS = [
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "OPENAI_API_KEY",
    "DESKCREW_AZURE_OPENAI_API_KEY",
    "DESKCREW_AZURE_OPENAI_ENDPOINT",
    "DESKCREW_OPENAI_API_KEY",
]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary config file."""
    config_path = temp_dir / "config.yaml"
    config_path.write_text(
        """
api_keys:
  azure_openai: test-azure-key
  azure_endpoint: https://example.openai.azure.com

model:
  model_id: gpt-4o-mini
  temperature: 0.2

chat:
  maximum_iterations: 6
  termination_token: done
"""
    )
    return config_path


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Clean provider environment variables for testing."""
    original = {var: os.environ.pop(var, None) for var in PROVIDER_ENV_VARS}

    reset_settings()

    yield

    for var, value in original.items():
        if value is not None:
            os.environ[var] = value
        elif var in os.environ:
            del os.environ[var]

    reset_settings()


@pytest.fixture
def test_settings(clean_env: None) -> Settings:
    """Create test settings pointing at plain OpenAI."""
    return Settings(openai_api_key="test-openai-key")


@pytest.fixture
def mock_api_keys(clean_env: None) -> Generator[None, None, None]:
    """Set mock Azure credentials for testing."""
    os.environ["AZURE_OPENAI_API_KEY"] = "test-azure-key"
    os.environ["AZURE_OPENAI_ENDPOINT"] = "https://example.openai.azure.com"
    yield
