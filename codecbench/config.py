"""
Benchmark configuration.

Defaults reproduce the reference benchmark. Every field can be overridden
from the environment (CODECBENCH_<FIELD>, upper-cased) and then from CLI
options.

Environment Variables:
    CODECBENCH_RANDOM_SEED, CODECBENCH_RANDOM_ITERATIONS, CODECBENCH_FOLLOW_DRAWS,
    CODECBENCH_DRIVER_SEED, CODECBENCH_INPUT_SIZE, CODECBENCH_OUTPUT_SIZE,
    CODECBENCH_INPUT_WEIGHT, CODECBENCH_K, CODECBENCH_WARMUP, CODECBENCH_TRIALS,
    CODECBENCH_ENCODER_SEED, CODECBENCH_LEARN_DURING_TRIALS, CODECBENCH_STORE
"""

import os
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

ENV_PREFIX = "CODECBENCH_"


class BenchConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # random-stream scenarios
    random_seed: int = Field(7, ge=0)
    random_iterations: int = Field(1000, ge=0)
    follow_draws: int = Field(5, ge=1)

    # sparse-encoder scenario
    driver_seed: int = Field(10, ge=0)
    input_size: int = Field(500, ge=1)
    output_size: int = Field(500, ge=1)
    input_weight: int = Field(50, ge=0)
    k: int = Field(50, ge=1)
    warmup: int = Field(10000, ge=0)
    trials: int = Field(100, ge=0)
    encoder_seed: int = Field(1, ge=0)
    learn_during_trials: bool = False

    store: Literal["memory", "file"] = "file"

    @model_validator(mode="after")
    def _check_sizes(self) -> "BenchConfig":
        if self.input_weight > self.input_size:
            raise ValueError("input_weight cannot exceed input_size")
        if self.k > self.output_size:
            raise ValueError("k cannot exceed output_size")
        return self

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "BenchConfig":
        """
        Build config from environment, then apply explicit overrides.

        Overrides whose value is None are ignored, so CLI options left unset
        fall through to the environment or the default.
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = env.get(ENV_PREFIX + name.upper())
            if raw:
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
