# File: beangen/templates.py
"""
beangen - Bean Code Templates
==============================
Turns analysed :class:`~beangen.beans.BeanDescriptor` objects into Python
source code.  Every table yields two classes:

    <package>/base/base_<table>.py   ``Base<Bean>``, regenerated on every run
    <package>/<table>.py             ``<Bean>(Base<Bean>)``, edited by hand

Generated base beans only call the protected API of the runtime base class
(``_get``, ``_set``, ``_get_ref``, ``_set_ref``, ``_find_objects``,
``_clone`` and the ``*_relationship(s)`` helpers); that class is provided by
the runtime module named in the configuration.

**Performance contract:**
    - All string assembly uses ``List[str]`` + ``"\\n".join()``.
    - Template methods are stateless; one generator serves a whole run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Union

from beangen.beans import (
    AnyProperty,
    BeanDescriptor,
    DirectRelationshipSpec,
    PivotRelationshipSpec,
)
from beangen.models import GenerationConfig
from beangen.properties import RelationPropertyDescriptor, ScalarPropertyDescriptor
from beangen.utils import (
    build_import_block,
    collect_type_imports,
    indent_lines,
    make_docstring,
    merge_import_dicts,
    wrap_in_quotes,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("beangen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Python types serialised through ``.isoformat()`` / ``str()`` in json_serialize
_ISO_TYPES: FrozenSet[str] = frozenset({"date", "datetime", "time"})
_STR_TYPES: FrozenSet[str] = frozenset({"Decimal", "UUID", "timedelta"})


@dataclass(slots=True)
class GeneratedFile:
    """One rendered source file, path relative to the output root."""

    path: str
    content: str
    editable: bool = False
    table: Optional[str] = None


class BeanTemplateGenerator:
    """
    Stateless code-generation engine for bean classes.

    Each ``generate_*`` method returns a complete, self-contained file
    content string.
    """

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._size: int = config.indent_size
        self._package: str = config.bean_package
        self._package_dir: str = config.bean_package.replace(".", "/")
        logger.debug(
            "BeanTemplateGenerator initialised (package=%s, naming=%s).",
            config.bean_package,
            config.naming_convention,
        )

    # ===================================================================
    # Helpers
    # ===================================================================

    def _doc(self, text: str, level: int) -> List[str]:
        if not self._config.generate_docstrings:
            return []
        return make_docstring(text, indent_level=level, size=self._size)

    def _body(self, lines: List[str], level: int) -> List[str]:
        return indent_lines(lines, level=level, size=self._size)

    def _module_path(self, module: str) -> str:
        return f"{self._package}.{module}"

    def _base_module_path(self, module: str) -> str:
        return f"{self._package}.base.{module}"

    def base_bean_path(self, bean: BeanDescriptor) -> str:
        return f"{self._package_dir}/base/{bean.base_module_name}.py"

    def bean_path(self, bean: BeanDescriptor) -> str:
        return f"{self._package_dir}/{bean.module_name}.py"

    def _referenced_classes(self, bean: BeanDescriptor) -> Dict[str, str]:
        """Bean classes named in annotations of *bean*, mapped to their table."""
        classes: Dict[str, str] = {}
        for prop in bean.exposed_properties().values():
            if isinstance(prop, RelationPropertyDescriptor):
                classes[prop.python_type()] = prop.target_table
        for prop in bean.parent_constructor_properties().values():
            if isinstance(prop, RelationPropertyDescriptor):
                classes[prop.python_type()] = prop.target_table
        for direct in bean.direct_relationships():
            classes[direct.referencing_class] = direct.referencing_table
        for pivot in bean.pivot_relationships():
            classes[pivot.remote_class] = pivot.remote_table
        if bean.parent_class_name:
            classes.pop(bean.parent_class_name, None)
        return dict(sorted(classes.items()))

    # ===================================================================
    # 1. Base bean
    # ===================================================================

    def generate_base_bean(self, bean: BeanDescriptor) -> str:
        """Generate the ``Base<Bean>`` module for one analysed table."""
        naming = bean.naming
        lines: List[str] = []

        # --- Imports ---
        imports: Dict[str, Set[str]] = {
            "typing": {"TYPE_CHECKING", "Any", "Dict", "List", "Optional"},
        }
        for prop in list(bean.exposed_properties().values()) + list(
            bean.parent_constructor_properties().values()
        ):
            if isinstance(prop, ScalarPropertyDescriptor):
                imports = merge_import_dicts(imports, collect_type_imports(prop.value_type()))

        if bean.parent_table_name:
            extends: str = bean.parent_class_name or ""
            imports.setdefault(
                self._module_path(naming.module_name(bean.parent_table_name)), set()
            ).add(extends)
        else:
            extends = self._config.runtime_base_class
            imports.setdefault(self._config.runtime_module, set()).add(extends)

        # --- File header ---
        lines.append('"""')
        lines.append(f"Base bean for table: {bean.table_name}")
        lines.append("Auto-generated by beangen. DO NOT edit this file, it is rewritten")
        lines.append(f"on every run. Make your changes in the {bean.class_name} class instead.")
        lines.append('"""')
        lines.append("")
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append(build_import_block(imports))
        lines.append("")

        referenced: Dict[str, str] = self._referenced_classes(bean)
        if referenced:
            lines.append("if TYPE_CHECKING:")
            for cls, table in referenced.items():
                lines.append(
                    f"{' ' * self._size}from "
                    f"{self._module_path(naming.module_name(table))} import {cls}"
                )
            lines.append("")
        lines.append("")

        # --- Class body ---
        lines.append(f"class {bean.base_class_name}({extends}):")
        body: List[str] = []
        body.extend(
            self._doc(f"The {bean.base_class_name} class maps the '{bean.table_name}' table.", 0)
        )
        body.append("")
        body.append(f"TABLE_NAME: str = {wrap_in_quotes(bean.table_name)}")

        for section in (
            self._constructor(bean),
            self._clone_method(bean),
            *(self._accessors(bean, key, prop) for key, prop in bean.exposed_properties().items()),
            *(self._direct_accessor(bean, spec) for spec in bean.direct_relationships()),
            *(self._pivot_accessors(bean, spec) for spec in bean.pivot_relationships()),
            self._json_serialize(bean) if self._config.generate_json_serialize else [],
        ):
            if section:
                body.append("")
                body.extend(section)

        while body and not body[0]:
            body.pop(0)
        lines.extend(self._body(body, 1))
        lines.append("")

        return "\n".join(lines)

    def _constructor(self, bean: BeanDescriptor) -> List[str]:
        params: List[str] = ["self"] + [
            f"{key}: {prop.value_type()}"
            for key, prop in bean.constructor_properties().items()
        ]
        lines: List[str] = [f"def __init__({', '.join(params)}) -> None:"]
        body: List[str] = self._doc("The constructor takes all compulsory arguments.", 0)

        forwarded: List[str] = [
            f"{key}={key if passed else 'None'}"
            for key, passed in bean.parent_call_arguments().items()
        ]
        body.append(f"super().__init__({', '.join(forwarded)})")
        for key, prop in bean.local_constructor_properties().items():
            body.append(f"self.{bean.setter_name(prop)}({key})")
        for prop in bean.default_properties().values():
            body.append(f"self.{bean.setter_name(prop)}({prop.default_assignment()})")

        lines.extend(self._body(body, 1))
        return lines

    def _clone_method(self, bean: BeanDescriptor) -> List[str]:
        resets: Dict[str, AnyProperty] = bean.clone_reset_properties()
        if not resets:
            return []
        lines: List[str] = [f"def clone(self) -> {bean.base_class_name}:"]
        body: List[str] = self._doc(
            "Returns an unsaved copy of this bean with its primary key cleared.", 0
        )
        body.append("cloned = self._clone()")
        for prop in resets.values():
            table: str = wrap_in_quotes(prop.owning_table())
            if isinstance(prop, RelationPropertyDescriptor):
                fk_name: str = wrap_in_quotes(prop.foreign_key.constraint_name)
                body.append(f"cloned._set_ref({fk_name}, None, {table})")
            else:
                body.append(f"cloned._set({wrap_in_quotes(prop.column.name)}, None, {table})")
        body.append("return cloned")
        lines.extend(self._body(body, 1))
        return lines

    def _accessors(
        self,
        bean: BeanDescriptor,
        key: str,
        prop: Union[ScalarPropertyDescriptor, RelationPropertyDescriptor],
    ) -> List[str]:
        table: str = wrap_in_quotes(prop.owning_table())
        getter: str = bean.getter_name(prop)
        setter: str = bean.setter_name(prop)
        value_type: str = prop.value_type()
        lines: List[str] = []

        if isinstance(prop, RelationPropertyDescriptor):
            fk_name: str = wrap_in_quotes(prop.foreign_key.constraint_name)
            columns: str = ", ".join(prop.column_names())
            lines.append(f"def {getter}(self) -> {value_type}:")
            lines.extend(self._body(
                self._doc(
                    f"Returns the {prop.python_type()} object bound to this object "
                    f"via the {columns} column(s).",
                    0,
                )
                + [f"return self._get_ref({fk_name}, {table})"],
                1,
            ))
            lines.append("")
            lines.append(f"def {setter}(self, {key}: {value_type}) -> None:")
            lines.extend(self._body(
                self._doc(
                    f"Binds a {prop.python_type()} object to this object "
                    f"via the {columns} column(s).",
                    0,
                )
                + [f"self._set_ref({fk_name}, {key}, {table})"],
                1,
            ))
            return lines

        column: str = wrap_in_quotes(prop.column.name)
        comment: str = f" {prop.column.comment}" if prop.column.comment else ""
        lines.append(f"def {getter}(self) -> {value_type}:")
        lines.extend(self._body(
            self._doc(f"The getter for the '{prop.column.name}' column.{comment}", 0)
            + [f"return self._get({column}, {table})"],
            1,
        ))
        lines.append("")
        lines.append(f"def {setter}(self, {key}: {value_type}) -> None:")
        lines.extend(self._body(
            self._doc(f"The setter for the '{prop.column.name}' column.", 0)
            + [f"self._set({column}, {key}, {table})"],
            1,
        ))
        return lines

    def _direct_accessor(
        self, bean: BeanDescriptor, spec: DirectRelationshipSpec
    ) -> List[str]:
        lines: List[str] = [
            f"def {spec.method_name}(self) -> List[{spec.referencing_class}]:"
        ]
        body: List[str] = self._doc(
            f"Returns the list of {spec.referencing_class} pointing to this bean "
            f"via the {', '.join(spec.foreign_key.local_columns)} column(s).",
            0,
        )
        body.append("return self._find_objects(")
        args: List[str] = [
            f"{wrap_in_quotes(spec.referencing_table)},",
            f"{wrap_in_quotes(spec.filter_expression)},",
            "{",
        ]
        args.extend(
            " " * self._size
            + f"{wrap_in_quotes(f.parameter)}: "
            + f"self._get({wrap_in_quotes(f.source_column)}, {wrap_in_quotes(f.source_table)}),"
            for f in spec.filters
        )
        args.append("},")
        body.extend(self._body(args, 1))
        body.append(")")
        lines.extend(self._body(body, 1))
        return lines

    def _pivot_accessors(
        self, bean: BeanDescriptor, spec: PivotRelationshipSpec
    ) -> List[str]:
        junction: str = wrap_in_quotes(spec.junction_table)
        var: str = spec.variable_name
        cls: str = spec.remote_class
        via: str = f"via the {spec.junction_table} pivot table."
        lines: List[str] = []

        lines.append(f"def {spec.getter_name}(self) -> List[{cls}]:")
        lines.extend(self._body(
            self._doc(f"Returns the list of {cls} associated to this bean {via}", 0)
            + [f"return self._get_relationships({junction})"],
            1,
        ))
        lines.append("")
        lines.append(f"def {spec.adder_name}(self, {var}: {cls}) -> None:")
        lines.extend(self._body(
            self._doc(f"Adds a relationship with {cls} associated to this bean {via}", 0)
            + [f"self._add_relationship({junction}, {var})"],
            1,
        ))
        lines.append("")
        lines.append(f"def {spec.remover_name}(self, {var}: {cls}) -> None:")
        lines.extend(self._body(
            self._doc(f"Deletes the relationship with {cls} associated to this bean {via}", 0)
            + [f"self._remove_relationship({junction}, {var})"],
            1,
        ))
        lines.append("")
        lines.append(f"def {spec.checker_name}(self, {var}: {cls}) -> bool:")
        lines.extend(self._body(
            self._doc(f"Returns whether this bean is associated with {cls} {via}", 0)
            + [f"return self._has_relationship({junction}, {var})"],
            1,
        ))
        return lines

    def _json_serialize(self, bean: BeanDescriptor) -> List[str]:
        lines: List[str] = [
            "def json_serialize(self, stop_recursion: bool = False) -> Dict[str, Any]:"
        ]
        body: List[str] = self._doc(
            "Serializes the object for JSON encoding.\n\n"
            "Related beans are serialized one level deep; pass\n"
            "``stop_recursion=True`` to skip them.",
            0,
        )
        if bean.parent_table_name:
            body.append("array: Dict[str, Any] = super().json_serialize(stop_recursion)")
        else:
            body.append("array: Dict[str, Any] = {}")

        relations: List[str] = []
        for key, prop in bean.exposed_properties().items():
            target: str = f"array[{wrap_in_quotes(key)}]"
            getter: str = f"self.{bean.getter_name(prop)}()"
            if isinstance(prop, RelationPropertyDescriptor):
                relations.append(f"value = {getter}")
                relations.append(
                    f"{target} = value.json_serialize(True) if value is not None else None"
                )
                continue
            python_type: str = prop.python_type()
            if python_type in _ISO_TYPES or python_type in _STR_TYPES:
                convert: str = "value.isoformat()" if python_type in _ISO_TYPES else "str(value)"
                body.append(f"value = {getter}")
                body.append(f"{target} = {convert} if value is not None else None")
            else:
                body.append(f"{target} = {getter}")

        if relations:
            body.append("if not stop_recursion:")
            body.extend(self._body(relations, 1))
        body.append("return array")
        lines.extend(self._body(body, 1))
        return lines

    # ===================================================================
    # 2. Editable bean
    # ===================================================================

    def generate_bean(self, bean: BeanDescriptor) -> str:
        """Generate the user-editable ``<Bean>`` subclass module."""
        lines: List[str] = [
            '"""',
            f"Bean for table: {bean.table_name}",
            "",
            "Generated once by beangen and yours to edit: this file is never",
            "overwritten unless overwrite_beans is enabled.",
            '"""',
            "",
            "from __future__ import annotations",
            "",
            f"from {self._base_module_path(bean.base_module_name)} import {bean.base_class_name}",
            "",
            "",
            f"class {bean.class_name}({bean.base_class_name}):",
        ]
        body: List[str] = self._doc(
            f"The {bean.class_name} class maps the '{bean.table_name}' table.", 0
        ) or ["pass"]
        lines.extend(self._body(body, 1))
        lines.append("")
        return "\n".join(lines)

    # ===================================================================
    # 3. Package files
    # ===================================================================

    def generate_package_init(self, beans: Sequence[BeanDescriptor]) -> str:
        """Generate the bean package ``__init__.py`` re-exporting every bean."""
        lines: List[str] = [
            '"""',
            f"{self._package} package.",
            "Auto-generated by beangen.",
            '"""',
            "",
        ]
        for bean in beans:
            lines.append(f"from {self._module_path(bean.module_name)} import {bean.class_name}")
        if beans:
            lines.append("")
        lines.append("__all__ = [")
        lines.extend(
            " " * self._size + f"{wrap_in_quotes(bean.class_name)}," for bean in beans
        )
        lines.append("]")
        lines.append("")
        return "\n".join(lines)

    def generate_base_package_init(self) -> str:
        return "\n".join([
            '"""',
            f"Generated base beans of the {self._package} package.",
            "Auto-generated by beangen. DO NOT edit.",
            '"""',
            "",
        ])

    # ===================================================================
    # 4. Aggregate generation
    # ===================================================================

    def generate_all_for_bean(self, bean: BeanDescriptor) -> Dict[str, GeneratedFile]:
        base_path: str = self.base_bean_path(bean)
        bean_path: str = self.bean_path(bean)
        return {
            base_path: GeneratedFile(
                base_path, self.generate_base_bean(bean), editable=False, table=bean.table_name
            ),
            bean_path: GeneratedFile(
                bean_path, self.generate_bean(bean), editable=True, table=bean.table_name
            ),
        }

    def generate_all(self, beans: Sequence[BeanDescriptor]) -> Dict[str, GeneratedFile]:
        """
        Generate every file of the bean package.

        Returns a dict of relative_path → :class:`GeneratedFile`.
        """
        result: Dict[str, GeneratedFile] = {}

        init_path: str = f"{self._package_dir}/__init__.py"
        base_init_path: str = f"{self._package_dir}/base/__init__.py"
        result[init_path] = GeneratedFile(init_path, self.generate_package_init(beans))
        result[base_init_path] = GeneratedFile(
            base_init_path, self.generate_base_package_init()
        )

        for bean in beans:
            result.update(self.generate_all_for_bean(bean))

        total_lines: int = sum(f.content.count("\n") + 1 for f in result.values())
        logger.info(
            "Full generation complete: %d files, ~%d lines.",
            len(result),
            total_lines,
        )
        return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "GeneratedFile",
    "BeanTemplateGenerator",
]

logger.debug("beangen.templates loaded.")
