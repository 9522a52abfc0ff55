"""Configuration settings models using Pydantic."""

from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ModelConfig(BaseModel):
    """Configuration for the shared text-generation model."""

    model_id: str = "gpt-4o"
    api_version: str = "2024-10-21"
    max_tokens: int = Field(default=4096, ge=1, le=200000)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    @field_validator("model_id")
    @classmethod
    def validate_model_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("model_id cannot be empty")
        return v.strip()


class AgentConfig(BaseModel):
    """Configuration for a single agent in the group chat."""

    name: str
    instructions: str = ""
    tools: list[str] = Field(default_factory=list)
    enabled: bool = True
    max_tokens: Optional[int] = Field(default=None, ge=1, le=200000)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip() if v else ""
        if not v:
            raise ValueError("agent name cannot be empty")
        if any(ch.isspace() for ch in v):
            raise ValueError(f"agent name '{v}' cannot contain whitespace")
        return v


class ChatConfig(BaseModel):
    """Configuration for the group chat loop."""

    initial_agent: str = "Coach"
    evaluated_agents: list[str] = Field(default_factory=lambda: ["Coach"])
    termination_token: str = "yes"
    maximum_iterations: int = Field(default=12, ge=1)
    history_depth: int = Field(default=1, ge=0)
    selection_strategy: Literal["prompt", "sequential", "tagged"] = "prompt"
    termination_strategy: Literal["prompt", "keyword"] = "prompt"
    selection_retries: int = Field(default=1, ge=0, le=5)
    max_tool_iterations: int = Field(default=5, ge=1)
    selection_prompt: Optional[str] = None
    termination_prompt: Optional[str] = None
    # Intent tag -> agent, used by the "tagged" selection strategy
    intent_routes: dict[str, str] = Field(
        default_factory=lambda: {
            "INTENT_STOCK": "StockManager",
            "INTENT_EXPERT": "Expert",
        }
    )

    @field_validator("termination_token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("termination_token cannot be empty")
        return v.strip()


class ToolsConfig(BaseModel):
    """Configuration for agent tools."""

    clipboard: bool = True
    timeout: float = Field(default=10.0, gt=0.0)


def _default_agents() -> list[AgentConfig]:
    return [
        AgentConfig(name="Coach", tools=["set_clipboard"]),
        AgentConfig(name="StockManager"),
        AgentConfig(name="Expert"),
    ]


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="DESKCREW_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # API Keys - AliasChoices allows reading from either the field name or the provider variable
    azure_openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("azure_openai_api_key", "AZURE_OPENAI_API_KEY"),
    )
    azure_openai_endpoint: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("azure_openai_endpoint", "AZURE_OPENAI_ENDPOINT"),
    )
    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("openai_api_key", "OPENAI_API_KEY"),
    )

    # Nested configurations
    model: ModelConfig = Field(default_factory=ModelConfig)
    agents: list[AgentConfig] = Field(default_factory=_default_agents)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    @field_validator("azure_openai_api_key", "azure_openai_endpoint", "openai_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_agent_pool(self) -> "Settings":
        """Check agent names are unique and chat roles refer to enabled agents."""
        seen: set[str] = set()
        for agent in self.agents:
            if agent.name in seen:
                raise ValueError(f"duplicate agent name '{agent.name}'")
            seen.add(agent.name)

        enabled = set(self.get_enabled_agents())
        if not enabled:
            raise ValueError("at least one agent must be enabled")
        if self.chat.initial_agent not in enabled:
            raise ValueError(
                f"initial_agent '{self.chat.initial_agent}' is not an enabled agent"
            )
        unknown = [name for name in self.chat.evaluated_agents if name not in enabled]
        if unknown:
            raise ValueError(f"evaluated_agents not in the agent pool: {unknown}")
        if self.chat.selection_strategy == "tagged":
            unrouted = sorted(
                agent for agent in self.chat.intent_routes.values() if agent not in enabled
            )
            if unrouted:
                raise ValueError(f"intent_routes target unknown agents: {unrouted}")
        return self

    def get_enabled_agents(self) -> list[str]:
        """Get names of enabled agents, in configuration order."""
        return [a.name for a in self.agents if a.enabled]

    def get_agent(self, name: str) -> Optional[AgentConfig]:
        """Get an agent's configuration by name."""
        for agent in self.agents:
            if agent.name == name:
                return agent
        return None

    @property
    def uses_azure(self) -> bool:
        """Whether requests go to an Azure OpenAI endpoint."""
        return self.azure_openai_endpoint is not None

    def has_api_key(self) -> bool:
        """Check if a key exists for the configured provider."""
        if self.uses_azure:
            return self.azure_openai_api_key is not None
        return self.openai_api_key is not None
