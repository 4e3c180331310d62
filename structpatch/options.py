"""
structpatch.options — Per-call configuration.

Every public entry point takes an `options` argument that may be None, a
mapping, or one of the models below.  Mappings may use the snake_case
field names or the camelCase names of the wire-level API
(detectMove, batchArrayOps, maxBatchSize, maxDepth, checkCircular,
validate, validateInverse).  Unknown keys are ignored so that one options
mapping can be shared between create_patch, apply_patch and
create_inverse_patch.
"""

from typing import Any, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_DEPTH = 100
DEFAULT_MAX_BATCH_SIZE = 100

_T = TypeVar("_T", bound="_Options")


class _Options(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @classmethod
    def coerce(cls: type[_T], options: Optional[Union["_Options", Mapping[str, Any]]] = None) -> _T:
        """Build an instance from None, a mapping, or another options model."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, BaseModel):
            return cls.model_validate(options.model_dump())
        return cls.model_validate(dict(options))


class PatchOptions(_Options):
    """Options for applying a patch."""
    # BaseModel already has a `validate` attribute, hence the alias
    validate_operations: bool = Field(default=True, alias="validate")
    check_circular: bool = Field(default=True, alias="checkCircular")
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, alias="maxDepth", ge=0)


class DiffOptions(_Options):
    """Options for create_patch."""
    detect_move: bool = Field(default=False, alias="detectMove")
    batch_array_ops: bool = Field(default=True, alias="batchArrayOps")
    max_batch_size: int = Field(default=DEFAULT_MAX_BATCH_SIZE, alias="maxBatchSize", ge=1)
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, alias="maxDepth", ge=0)
    check_circular: bool = Field(default=True, alias="checkCircular")


class InverseOptions(PatchOptions):
    """Options for create_inverse_patch and apply_patch_with_inverse."""
    validate_inverse: bool = Field(default=True, alias="validateInverse")
    batch_array_ops: bool = Field(default=True, alias="batchArrayOps")
    max_batch_size: int = Field(default=DEFAULT_MAX_BATCH_SIZE, alias="maxBatchSize", ge=1)
    invert_copy: bool = Field(default=False, alias="invertCopy")
