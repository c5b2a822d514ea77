"""
Store configuration models.

A store config has one of two shapes, selected by the presence of the
``connectionString`` key:

    {"connectionString": "redis://...", "in_vpc": false, "tunnel": {...}}
    {"host": "...", "port": 6379, "user": "...", "password": "...", ...}

Each shape has its own model; both reject unknown keys. Validation runs in
one of two modes. When written, templates such as ``{{ REDIS_PORT }}`` are
accepted wherever a string can stand; when read back, every template has
been resolved and the values must be concrete.
"""

from typing import Annotated, Any, Dict, Literal, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Discriminator,
    Field,
    StrictBool,
    StrictStr,
    Tag,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from ...core.exceptions import ConfigInvalid
from .interpolation import is_template

CONNECTION_STRING_KEY = "connectionString"
SSL_UNAUTHORIZED = "unauthorized"


def _templates_allowed(info: ValidationInfo) -> bool:
    return bool(info.context and info.context.get("allow_templates"))


def _coerce_port(value: Any, info: ValidationInfo) -> Union[int, str]:
    if _templates_allowed(info) and is_template(value):
        return value
    port: Optional[int] = None
    if isinstance(value, bool):
        port = None
    elif isinstance(value, int):
        port = value
    elif isinstance(value, float) and value.is_integer():
        port = int(value)
    elif isinstance(value, str) and value.strip().isdecimal():
        port = int(value.strip())
    if port is None or not 1 <= port <= 65535:
        raise ValueError("must be between 1 - 65535")
    return port


def _required_string(value: Any) -> Any:
    if not value or not isinstance(value, str):
        raise ValueError("must be a non-empty string")
    return value


def _loose_string(value: Any) -> str:
    if value is None or value is False:
        return ""
    if isinstance(value, (dict, list)):
        raise ValueError("must be a string")
    return str(value)


def _password(value: Any) -> Any:
    if value is None or value is False:
        return ""
    return value


def _flag(value: Any) -> Any:
    return False if value is None else value


def _ssl(value: Any) -> Any:
    if value is None:
        return False
    if value is True or value is False or value == SSL_UNAUTHORIZED:
        return value
    raise ValueError(f'must be true, false or "{SSL_UNAUTHORIZED}"')


Port = Annotated[Union[int, str], BeforeValidator(_coerce_port)]
RequiredString = Annotated[StrictStr, BeforeValidator(_required_string)]
LooseString = Annotated[str, BeforeValidator(_loose_string)]
Password = Annotated[StrictStr, BeforeValidator(_password)]
Flag = Annotated[StrictBool, BeforeValidator(_flag)]
SSLMode = Annotated[Union[StrictBool, Literal["unauthorized"]], BeforeValidator(_ssl)]


class TunnelConfig(BaseModel):
    """SSH tunnel configuration."""
    model_config = ConfigDict(extra="forbid")

    user: RequiredString
    host: RequiredString
    port: Port = 22
    private_key: Optional[StrictStr] = None


class _BaseStoreConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    in_vpc: Flag = False
    tunnel: Optional[TunnelConfig] = None

    @field_validator("tunnel", mode="before")
    @classmethod
    def _empty_tunnel(cls, value: Any) -> Any:
        return None if value is None or value is False else value

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def without_tunnel(self) -> "_BaseStoreConfig":
        return self.model_copy(update={"tunnel": None})


class ConnectionStringConfig(_BaseStoreConfig):
    """Store reached through a single connection string."""
    connection_string: StrictStr = Field(alias=CONNECTION_STRING_KEY)


class DiscreteStoreConfig(_BaseStoreConfig):
    """Store described by discrete connection fields."""
    host: RequiredString
    port: Port
    user: LooseString = ""
    password: Password = ""
    database: LooseString = ""
    ssl: SSLMode = False


StoreConfig = Union[ConnectionStringConfig, DiscreteStoreConfig]


def _store_shape(value: Any) -> str:
    if isinstance(value, Mapping) and CONNECTION_STRING_KEY in value:
        return "connection_string"
    return "discrete"


_SHAPE_TAGS = ("connection_string", "discrete")

_store_config_adapter: TypeAdapter[StoreConfig] = TypeAdapter(
    Annotated[
        Union[
            Annotated[ConnectionStringConfig, Tag("connection_string")],
            Annotated[DiscreteStoreConfig, Tag("discrete")],
        ],
        Discriminator(_store_shape),
    ]
)


def _to_config_invalid(error: ValidationError) -> ConfigInvalid:
    first = error.errors()[0]
    loc = [str(part) for part in first.get("loc", ())]
    if loc and loc[0] in _SHAPE_TAGS:
        loc = loc[1:]

    error_type = first.get("type")
    if error_type == "extra_forbidden":
        message = f'invalid key "{loc[-1]}"' if loc else "invalid key"
        loc = loc[:-1]
    elif error_type == "missing":
        message = "is required"
    else:
        message = first.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]

    return ConfigInvalid(
        f"could not validate key-value config: {message}",
        path=loc,
        details=error.errors()
    )


def validate_store_config(raw: Any, allow_templates: bool = False) -> StoreConfig:
    """
    Validate a raw store config.

    Args:
        raw: Mapping (or an already validated model)
        allow_templates: Accept ``{{ NAME }}`` placeholders for non-string fields

    Returns:
        ConnectionStringConfig or DiscreteStoreConfig

    Raises:
        ConfigInvalid: With the offending field path.
    """
    if isinstance(raw, _BaseStoreConfig):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping) or not raw:
        raise ConfigInvalid("invalid config: empty or not an object")

    try:
        return _store_config_adapter.validate_python(
            dict(raw),
            context={"allow_templates": allow_templates}
        )
    except ValidationError as e:
        raise _to_config_invalid(e) from e
