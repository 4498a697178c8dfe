"""
Configuration management for the connector engine with Pydantic validation
"""

from typing import Dict, List, Union, Any, Literal
from pathlib import Path
import yaml
import os
import re
from pydantic import BaseModel, Field, field_validator, ConfigDict, ValidationError

from .exceptions import ConfigurationError
from .models import RoutingStyle


# ============================================================================
# Pydantic Models for Configuration Validation
# ============================================================================

class RoutingSettings(BaseModel):
    """Orthogonal routing parameters"""
    stub_length: float = Field(20.0, ge=0, description="Straight run leaving/entering a shape before any turn")
    alignment_tolerance: float = Field(30.0, ge=0, description="Perpendicular offset below which endpoints count as aligned")
    avoidance_offset: float = Field(50.0, gt=0, description="Standard detour distance when routing around obstacles")
    corner_radius: float = Field(4.0, ge=0, description="Corner rounding for SVG output")


class ObstacleSettings(BaseModel):
    """Collision testing parameters"""
    margin: float = Field(10.0, ge=0, description="Buffer added around every obstacle")


class HandleSettings(BaseModel):
    """Connection handle decorations"""
    offset: float = Field(15.0, ge=0, description="Distance of handle markers from the shape edge")
    fractions: List[float] = Field(
        default_factory=lambda: [0.25, 0.5, 0.75],
        min_length=1,
        description="Handle positions along each side of rectangles and ellipses"
    )

    @field_validator('fractions')
    @classmethod
    def validate_fractions(cls, v):
        """Fractions must lie on the side"""
        for fraction in v:
            if not 0.0 <= fraction <= 1.0:
                raise ValueError(f"Handle fraction {fraction} must be between 0 and 1")
        return sorted(set(v))


class ConnectorDefaults(BaseModel):
    """Default attributes for newly created connectors"""
    routing_style: RoutingStyle = Field('orthogonal', description="Routing style")
    stroke_color: str = Field('#2c3e50', min_length=1, description="Stroke colour")
    stroke_width: float = Field(2.0, gt=0, description="Stroke width")
    arrow_size: float = Field(10.0, gt=0, description="Arrow head length")


class EngineConfigModel(BaseModel):
    """Pydantic model for engine configuration validation"""
    model_config = ConfigDict(extra='ignore')  # Ignore extra fields in YAML

    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    obstacles: ObstacleSettings = Field(default_factory=ObstacleSettings)
    handles: HandleSettings = Field(default_factory=HandleSettings)
    connectors: ConnectorDefaults = Field(default_factory=ConnectorDefaults)
    connection_policy: Literal['fixed', 'nearest'] = Field(
        'fixed',
        description="'fixed' keeps sides chosen at creation, 'nearest' re-selects them on every shape change"
    )


# ============================================================================
# Environment Variable Substitution
# ============================================================================

ENV_VAR_PATTERN = re.compile(
    r'\$\{(?P<braced>[A-Za-z_]\w*)(?::-(?P<default>[^}]*))?\}|\$(?P<bare>[A-Za-z_]\w*)'
)


def _expand_env_var(match: re.Match) -> str:
    name = match.group('braced') or match.group('bare')
    env_value = os.environ.get(name)
    if env_value is not None:
        return env_value
    if match.group('default') is not None:
        return match.group('default')
    raise ConfigurationError(f"Environment variable '{name}' is not set and has no default")


def _substitute_env_vars(value: Any) -> Any:
    """
    Expand ${VAR}, $VAR and ${VAR:-default} in every string of a parsed config

    Each string is expanded in a single pass, so substituted values are
    never expanded again.

    Raises:
        ConfigurationError: If a variable without a default is not set
    """
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(_expand_env_var, value)
    if isinstance(value, dict):
        return {key: _substitute_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


# ============================================================================
# EngineConfig Class (wrapper around Pydantic model)
# ============================================================================

class EngineConfig:
    """Configuration class for routing parameters with validation"""

    def __init__(self, config_dict: Dict = None):
        """Initialize from dictionary (parsed from YAML) with Pydantic validation"""
        config_dict = _substitute_env_vars(config_dict or {})

        try:
            self._model = EngineConfigModel(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {str(e)}") from e

        # Routing
        self.stub_length = self._model.routing.stub_length
        self.alignment_tolerance = self._model.routing.alignment_tolerance
        self.avoidance_offset = self._model.routing.avoidance_offset
        self.corner_radius = self._model.routing.corner_radius

        # Obstacles
        self.obstacle_margin = self._model.obstacles.margin

        # Handles
        self.handle_offset = self._model.handles.offset
        self.handle_fractions = self._model.handles.fractions

        # Connector defaults
        self.default_routing_style = self._model.connectors.routing_style
        self.default_stroke_color = self._model.connectors.stroke_color
        self.default_stroke_width = self._model.connectors.stroke_width
        self.default_arrow_size = self._model.connectors.arrow_size

        self.connection_policy = self._model.connection_policy

    def connector_defaults(self) -> Dict[str, Any]:
        """Keyword defaults for Connector construction"""
        return {
            'routing_style': self.default_routing_style,
            'stroke_color': self.default_stroke_color,
            'stroke_width': self.default_stroke_width,
            'arrow_size': self.default_arrow_size,
        }

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> 'EngineConfig':
        """Load configuration from YAML file with validation"""
        try:
            with open(yaml_path, 'r') as f:
                config_dict = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file: {str(e)}") from e
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        if config_dict is not None and not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration root must be a mapping, got {type(config_dict).__name__}")

        return cls(config_dict)

    def to_dict(self) -> Dict:
        """Convert config back to dictionary"""
        return self._model.model_dump()
