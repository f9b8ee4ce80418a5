"""Field descriptors.

A ``Field`` maps one database column (or SQL expression) to one property of
the rows sent to and received from the client. It decides whether the value
is read and written, formats it in each direction and validates submitted
values.
"""

import re
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Union

from gridsql.common.exceptions import validation_error
from gridsql.constants.sql import SetMode
from gridsql.editor.options import Options
from gridsql.editor.search_builder_options import SearchBuilderOptions
from gridsql.editor.search_pane_options import SearchPaneOptions
from gridsql.utils.props import prop_exists, read_prop, write_prop

if TYPE_CHECKING:
    from gridsql.editor.host import EditorHost

_FIELD_ALIAS_RE = re.compile(r" as (?![^(]*\))", re.IGNORECASE)

Formatter = Callable[[Any, Mapping[str, Any]], Any]
Validator = Callable[[Any, Mapping[str, Any], "Field", Dict[str, Any]], Union[bool, str]]


class Field:
    """One column of an editable table.

    Args:
        db_field: Column name or SQL expression. ``"expr as name"`` sets both
            the database field and the client name.
        name: Property name used in client data. Defaults to ``db_field``.

    Example:
        >>> Field("users.first_name").validator(
        ...     lambda value, data, field, ctx: True if value else "Required"
        ... )
    """

    def __init__(self, db_field: str, name: Optional[str] = None):
        self._db_field = db_field
        self._name = name if name is not None else db_field

        split = _FIELD_ALIAS_RE.split(db_field, maxsplit=1)
        if len(split) > 1:
            self._db_field = split[0].strip()
            self._name = name if name is not None else split[1].strip()

        self._get = True
        self._set = SetMode.BOTH
        self._get_formatter: Optional[Formatter] = None
        self._set_formatter: Optional[Formatter] = None
        self._get_value: Any = None
        self._set_value: Any = None
        self._validators: List[Validator] = []
        self._options: Optional[Options] = None
        self._search_pane_options: Optional[SearchPaneOptions] = None
        self._search_pane_fn: Optional[Callable] = None
        self._search_builder_options: Optional[SearchBuilderOptions] = None
        self._search_builder_fn: Optional[Callable] = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def db_field(self) -> str:
        return self._db_field

    @property
    def name(self) -> str:
        return self._name

    @property
    def get_enabled(self) -> bool:
        return self._get

    @property
    def set_mode(self) -> SetMode:
        return self._set

    @property
    def get_value_source(self) -> Any:
        return self._get_value

    @property
    def options_provider(self) -> Optional[Options]:
        return self._options

    def get(self, flag: bool) -> "Field":
        """Include (or exclude) the field when reading rows."""
        self._get = bool(flag)
        return self

    def set(self, mode: Union[SetMode, str, bool]) -> "Field":
        """When the field is written: ``create``, ``edit``, ``both`` or ``none``.

        ``True`` and ``False`` are shorthands for ``both`` and ``none``.
        """
        if mode is True:
            mode = SetMode.BOTH
        elif mode is False:
            mode = SetMode.NONE
        self._set = SetMode(mode)
        return self

    def get_formatter(self, formatter: Optional[Formatter]) -> "Field":
        """Format database values before they reach the client: ``fn(value, row)``."""
        self._get_formatter = formatter
        return self

    def set_formatter(self, formatter: Optional[Formatter]) -> "Field":
        """Format submitted values before they are written: ``fn(value, data)``."""
        self._set_formatter = formatter
        return self

    def get_value(self, value: Any) -> "Field":
        """Read a fixed value (or the result of a callable) instead of the column."""
        self._get_value = value
        return self

    def set_value(self, value: Any) -> "Field":
        """Write a fixed value (or the result of a callable) instead of submitted data."""
        self._set_value = value
        return self

    def validator(self, fn: Validator) -> "Field":
        """Add a validator ``fn(value, data, field, context) -> True | message``."""
        self._validators.append(fn)
        return self

    def options(
        self,
        provider: Union[Options, Callable, str],
        value: Optional[str] = None,
        label: Union[str, List[str], None] = None,
        where: Any = None,
        render: Optional[Callable] = None,
        order: Union[bool, str, None] = None,
    ) -> "Field":
        """Attach the list of values the client may choose from.

        ``provider`` is an ``Options`` instance, a callable ``fn(db)`` returning
        the list, or a table name used with ``value``, ``label``, ``where``,
        ``render`` and ``order``.
        """
        if isinstance(provider, Options):
            self._options = provider
        elif callable(provider):
            self._options = Options().fn(provider)
        else:
            self._options = Options().table(provider).value(value).label(label)
            if where is not None:
                self._options.where(where)
            if render is not None:
                self._options.render(render)
            if order is not None:
                self._options.order(order)
        return self

    def search_pane_options(self, provider: Union[SearchPaneOptions, Callable]) -> "Field":
        """Attach a search pane provider, or a callable ``fn(db, host)``."""
        if isinstance(provider, SearchPaneOptions):
            self._search_pane_options, self._search_pane_fn = provider, None
        else:
            self._search_pane_options, self._search_pane_fn = None, provider
        return self

    def search_builder_options(self, provider: Union[SearchBuilderOptions, Callable]) -> "Field":
        """Attach a search builder provider, or a callable ``fn(db, host)``."""
        if isinstance(provider, SearchBuilderOptions):
            self._search_builder_options, self._search_builder_fn = provider, None
        else:
            self._search_builder_options, self._search_builder_fn = None, provider
        return self

    # ------------------------------------------------------------------
    # Behaviour
    # ------------------------------------------------------------------

    def apply(self, action: str, data: Optional[Mapping[str, Any]] = None) -> bool:
        """Whether the field takes part in ``action`` (``get``, ``create``, ``edit``).

        For writes the field must also be present in ``data``, unless a set
        value is configured.
        """
        if action == "get":
            return self._get

        if action == SetMode.CREATE.value and self._set in (SetMode.NONE, SetMode.EDIT):
            return False
        if action == SetMode.EDIT.value and self._set in (SetMode.NONE, SetMode.CREATE):
            return False

        if self._set_value is None and not prop_exists(self._name, data):
            return False

        return True

    def val(self, direction: str, data: Mapping[str, Any]) -> Any:
        """Value of the field for ``direction``.

        ``get`` reads the database row by ``db_field``; ``set`` reads submitted
        data by ``name``. The matching formatter is applied either way.

        Raises:
            GridSQLError: VALIDATION_ERROR when setting an SQL function field
        """
        if direction == "get":
            if self._get_value is not None:
                value = self._assigned(self._get_value)
            else:
                value = data.get(self._db_field) if data else None
            return self._format(value, data, self._get_formatter)

        if "(" in self._db_field:
            raise validation_error(
                "Cannot set the value for an SQL function field. "
                f"These fields are read only: {self._name}",
                field=self._name,
            )

        if self._set_value is not None:
            value = self._assigned(self._set_value)
        else:
            value = read_prop(self._name, data)

        return self._format(value, data, self._set_formatter)

    def write(self, out: Dict[str, Any], row: Mapping[str, Any]) -> None:
        """Write the formatted value of ``row`` into ``out`` under ``name``."""
        write_prop(out, self._name, self.val("get", row))

    def validate(
        self,
        data: Mapping[str, Any],
        host: "EditorHost",
        row_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Union[bool, str]:
        """Run the validators; ``True`` or the first error message."""
        if not self._validators:
            return True

        if self._set_value is not None:
            value = self._assigned(self._set_value)
        else:
            value = read_prop(self._name, data)

        context = {
            "action": action,
            "id": row_id,
            "field": self,
            "host": host,
            "db": host.db,
        }

        for fn in self._validators:
            result = fn(value, data, self, context)
            if result is not True:
                return result

        return True

    def options_exec(self, db, refresh: bool = False, search: bool = False):
        """Run the options provider, or ``None`` when there is none."""
        if self._options is None:
            return None
        return self._options.exec(db, refresh, search)

    def search_pane_options_exec(self, host: "EditorHost", request: Mapping[str, Any], fields, left_join=None):
        if self._search_pane_fn is not None:
            return self._search_pane_fn(host.db, host)
        if self._search_pane_options is not None:
            return self._search_pane_options.exec(self, host, request, fields, left_join)
        return None

    def search_builder_options_exec(self, host: "EditorHost", request: Mapping[str, Any], fields, left_join=None):
        if self._search_builder_fn is not None:
            return self._search_builder_fn(host.db, host)
        if self._search_builder_options is not None:
            return self._search_builder_options.exec(self, host, request, fields, left_join)
        return None

    @staticmethod
    def _assigned(value: Any) -> Any:
        return value() if callable(value) else value

    @staticmethod
    def _format(value: Any, data: Mapping[str, Any], formatter: Optional[Formatter]) -> Any:
        if formatter is None:
            return value
        return formatter(value, data)
