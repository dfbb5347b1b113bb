from pydantic import BaseModel, ConfigDict, Field

from forkmap_core.runtime_config import EngineRuntimeConfig


class ForkmapConfig(BaseModel):
    """
    Configuration for the Forkmap Core Engine.
    Decouples the engine from environment variables.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Narrative handling
    require_narrative: bool = Field(False, description="Warn when a mapping round carries no narrative")

    # Traversal
    restore_mismatched_state: bool = Field(
        False, description="Restore a persisted traversal even if its claim ids differ from the current graph"
    )

    runtime: EngineRuntimeConfig = Field(default_factory=EngineRuntimeConfig.load_from_env)
