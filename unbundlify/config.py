"""Configuration management for unbundlify."""

from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Load .env from multiple locations
# 1. Current working directory
load_dotenv()
# 2. Project directory (where this package is installed)
_package_dir = Path(__file__).parent
load_dotenv(_package_dir.parent / ".env")
# 3. Home directory config
load_dotenv(Path.home() / ".config" / "unbundlify" / ".env")


class NameStyle(str, Enum):
    """Supported generated-name styles."""
    DICTIONARY = "dictionary"
    PHONETIC = "phonetic"


class Config(BaseSettings):
    """Configuration for unbundlify."""

    # Transformations
    rename_variables: bool = Field(default=True, description="Generate and deduce variable names")
    rewrite_code: bool = Field(default=True, description="Rewrite minifier idioms into readable code")
    name_style: NameStyle = Field(default=NameStyle.DICTIONARY, description="Style of generated variable names")
    name_seed: int = Field(default=0, ge=0, description="Starting seed of the name generator")

    # Output Settings
    indent_size: int = Field(default=2, ge=1, description="Spaces per indentation level in output")
    output_dir: Optional[Path] = Field(default=None, description="Default output directory for unbundled modules")

    # Runtime
    recursion_limit: int = Field(
        default=10000,
        description="Interpreter recursion limit, raised for deeply nested minified expressions",
    )
    debug_log_file: Optional[Path] = Field(default=None, description="Write a debug log to this file")

    model_config = {
        "env_prefix": "UNBUNDLIFY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("name_style", mode="before")
    @classmethod
    def normalize_name_style(cls, v):
        """Accept name styles in any case and with surrounding whitespace."""
        if isinstance(v, str):
            return v.strip().lower()
        return v
