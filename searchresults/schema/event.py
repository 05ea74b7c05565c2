"""Event and field value schema for search results."""

from decimal import Decimal, InvalidOperation
from typing import Callable, ClassVar, Dict, List, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel, ConfigDict, model_validator

from searchresults.utils.exceptions import FieldConversionError

T = TypeVar("T")

_TRUE_STRINGS = ("true", "1", "yes", "t")
_FALSE_STRINGS = ("false", "0", "no", "f")


class FieldValue(BaseModel):
    """Value of one field in an event.

    A field holds either a single (possibly delimited) string or an array of
    strings. Exactly one of the two is set. Access values as an array when
    possible: the delimiter of a delimited string depends on the search and
    the index, and can differ between fields of the same event. Readers that
    do not use delimiters (such as the XML reader) always produce arrays.
    """

    DEFAULT_DELIMITER: ClassVar[str] = ","

    single: Optional[str] = None
    values: Optional[List[str]] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_one_variant(self) -> "FieldValue":
        """Ensure exactly one of single/values is populated."""
        if (self.single is None) == (self.values is None):
            raise ValueError("FieldValue needs exactly one of 'single' or 'values'")
        return self

    @classmethod
    def of(cls, value: Union[str, Sequence[str]]) -> "FieldValue":
        """Create from a single/delimited string or from a sequence of strings."""
        if isinstance(value, str):
            return cls(single=value)
        return cls(values=list(value))

    @property
    def is_array(self) -> bool:
        return self.values is not None

    def get_array(self, delimiter: str = DEFAULT_DELIMITER) -> List[str]:
        """Get the values of the field as a list.

        Args:
            delimiter: Delimiter used to split a single/delimited value.
                Ignored when the field already holds an array.

        Returns:
            The original array, or the single value split on the delimiter
        """
        if self.values is not None:
            return list(self.values)
        return self.single.split(delimiter)

    def __str__(self) -> str:
        if self.single is not None:
            return self.single
        return self.DEFAULT_DELIMITER.join(self.values)

    def _convert(self, converter: Callable[[str], T], type_name: str) -> T:
        text = str(self)
        try:
            return converter(text)
        except (ValueError, InvalidOperation) as e:
            raise FieldConversionError(f"Cannot convert {text!r} to {type_name}: {e}") from e

    def to_int(self) -> int:
        return self._convert(int, "int")

    def to_float(self) -> float:
        return self._convert(float, "float")

    def to_decimal(self) -> Decimal:
        return self._convert(Decimal, "Decimal")

    def to_bool(self) -> bool:
        """Convert "true"/"false" style renderings (also 1/0, yes/no)."""

        def parse_bool(text: str) -> bool:
            lowered = text.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
            raise ValueError("not a boolean literal")

        return self._convert(parse_bool, "bool")

    def try_int(self) -> Optional[int]:
        try:
            return self.to_int()
        except FieldConversionError:
            return None

    def try_float(self) -> Optional[float]:
        try:
            return self.to_float()
        except FieldConversionError:
            return None


class Event(dict):
    """One search result: an ordered mapping of field name to FieldValue.

    The XML reader also fills `segmented_raw` with the markup-preserving
    rendering of the `_raw` field when the server sends it as a `<v>` element.
    """

    def __init__(self, *args, segmented_raw: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.segmented_raw = segmented_raw

    def to_dict(self) -> Dict[str, Union[str, List[str]]]:
        """Plain dictionary of field name to string or list of strings."""
        return {
            name: value.get_array() if value.is_array else str(value)
            for name, value in self.items()
        }

    def __repr__(self) -> str:
        return f"Event({dict.__repr__(self)})"
