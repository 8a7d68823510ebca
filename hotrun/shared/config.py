from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from hotrun.core.lifecycle.commands import quote_arg

DEFAULT_BUILD_CMD = "go build"
DEFAULT_SOURCE_EXT = ".go"


class HotrunConfig(BaseModel):
    root_dir: Path = Field(default_factory=Path.cwd)
    build_cmd: Optional[str] = None
    run_cmd: Optional[str] = None
    output: Optional[str] = None
    source_ext: str = DEFAULT_SOURCE_EXT
    quiet_period_ms: int = Field(default=1000, gt=0)
    stop_timeout_ms: int = Field(default=5000, ge=0)
    run_on_start: bool = True

    @field_validator("source_ext")
    @classmethod
    def _dotted_ext(cls, v: str) -> str:
        v = v.strip()
        if not v or v == ".":
            raise ValueError("source_ext must not be empty")
        return v if v.startswith(".") else "." + v

    @model_validator(mode="after")
    def _fill_defaults(self) -> "HotrunConfig":
        # Blank strings are kept as-is so startup can reject them.
        self.root_dir = Path(self.root_dir).expanduser().resolve()
        # build and run must agree on the artifact name, so -o is always passed
        artifact = self.output or self.root_dir.name
        if self.build_cmd is None:
            self.build_cmd = f"{DEFAULT_BUILD_CMD} -o {quote_arg(artifact)}"
        if self.run_cmd is None:
            self.run_cmd = quote_arg(str(self.root_dir / artifact))
        return self

    def to_lifecycle_config(self) -> dict:
        return {
            "cwd": str(self.root_dir),
            "quiet_period_s": self.quiet_period_ms / 1000.0,
            "stop_timeout_s": self.stop_timeout_ms / 1000.0,
        }
