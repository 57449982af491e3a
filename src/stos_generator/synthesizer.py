"""Synthesize the statements that copy a source struct into a target struct."""

from __future__ import annotations

import logging

from stos_generator import helper
from stos_generator.classifier import ConversionCategory, ConversionPlan, classify
from stos_generator.helper import RECEIVER_NAME, SOURCE_NAME, TARGET_NAME
from stos_generator.shapes import StructShape, TypeShape
from stos_generator.writer_dto import GenerationContext, UnresolvedMapping

logger = logging.getLogger(__name__)

UNRESOLVED_MARKER = "TODO: unresolved mapping"
ELEMENT_TEMP_NAME = "mapped"
ZERO_VALUE_NAME = "zeroValue"


class FieldMappingSynthesizer:
    """Generates function bodies for the entry methods and the nested helpers of one run."""

    def __init__(self, context: GenerationContext):
        self.context = context

    def synthesize_entry(self, source: TypeShape, target: TypeShape, function_name: str) -> list[str]:
        """Body lines of an entry method converting `source` into `target`.

        Struct pairs are copied field by field. Any other pair is converted like a single
        field would be, into a zero-valued `objTarget`.
        """
        if isinstance(source, StructShape) and isinstance(target, StructShape):
            return self.synthesize_struct(source, target, function_name)

        plan = classify(source, target)
        lines = [f"var {TARGET_NAME} {self.context.type_name(target)}"]
        lines.extend(self._emit(plan, SOURCE_NAME, TARGET_NAME, ELEMENT_TEMP_NAME, function_name, SOURCE_NAME))
        lines.append(f"return {TARGET_NAME}")
        return lines

    def synthesize_struct(self, source: StructShape, target: StructShape, function_name: str) -> list[str]:
        """Body lines populating a fresh zero-valued target struct from a source struct."""
        lines = [f"{TARGET_NAME} := {self.context.type_name(target)}{{}}"]
        lines.extend(self.field_mappings(source, target, function_name))
        lines.append(f"return {TARGET_NAME}")
        return lines

    def field_mappings(self, source: StructShape, target: StructShape, function_name: str) -> list[str]:
        """Assignment statements for all fields that exist with the same name in both structs.

        Fields only present in the source are dropped, fields only present in the target keep
        their zero value. Unexported fields of structs declared in another package cannot be
        accessed from the generated code and are marked unresolved. Blank fields are skipped.
        """
        lines: list[str] = []
        for source_field in source.fields:
            target_field = target.field_by_name(source_field.name)
            if target_field is None or source_field.name == "_":
                continue

            if helper.is_exported(source_field.name) or self._is_local(source, target):
                plan = classify(source_field.shape, target_field.shape)
            else:
                plan = ConversionPlan(
                    ConversionCategory.UNRESOLVED, source_field.shape, target_field.shape, reason="unexported field"
                )
            lines.extend(
                self._emit(
                    plan,
                    f"{SOURCE_NAME}.{source_field.name}",
                    f"{TARGET_NAME}.{target_field.name}",
                    f"mapped{source_field.name}",
                    function_name,
                    source_field.name,
                )
            )
        return lines

    def _is_local(self, *structs: StructShape) -> bool:
        return all(struct.package == self.context.package_path for struct in structs)

    def _request_helper(self, plan: ConversionPlan) -> str:
        pair = plan.helper_pair
        assert pair is not None
        return self.context.registry.request_helper(pair[0], pair[1], self.synthesize_struct)

    def _value_expression(self, plan: ConversionPlan, expression: str) -> str:
        """The expression converting a plain value, for the value categories."""
        if plan.category == ConversionCategory.IDENTICAL:
            return expression
        if plan.category == ConversionCategory.CONVERTIBLE:
            return f"{self.context.type_name(plan.target)}({expression})"
        if plan.category == ConversionCategory.STRUCT_TO_STRUCT:
            return f"{RECEIVER_NAME}.{self._request_helper(plan)}({expression})"
        raise ValueError(f"Not a value conversion: {plan.category}")

    def _emit(  # noqa: C901
        self,
        plan: ConversionPlan,
        source: str,
        target: str,
        temp_name: str,
        function_name: str,
        label: str,
        nil_fallback: bool = True,
    ) -> list[str]:
        """Statements assigning the converted `source` expression to `target`.

        Args:
            plan (ConversionPlan): How to convert.
            source (str): The source expression, e.g. `objSource.Role`.
            target (str): The assignable target expression, e.g. `objTarget.Role`.
            temp_name (str): Name of a temporary, for values that are turned into pointers.
            function_name (str): The generated function, for reporting unresolved mappings.
            label (str): The field name, for reporting unresolved mappings.
            nil_fallback (bool): Whether a nil source pointer assigns nil or the zero value.
                Slice elements leave the target element untouched instead.

        Returns:
            list[str]: The unindented statements.
        """
        category = plan.category

        if category == ConversionCategory.IDENTICAL:
            return [f"{target} = {source}"]

        if category in (ConversionCategory.CONVERTIBLE, ConversionCategory.STRUCT_TO_STRUCT):
            return [f"{target} = {self._value_expression(plan, source)}"]

        if category == ConversionCategory.POINTER_TO_POINTER:
            assert plan.inner is not None
            value = self._value_expression(plan.inner, f"*{source}")
            return helper.new_if_block(
                f"{source} != nil",
                [f"{temp_name} := {value}", f"{target} = &{temp_name}"],
                [f"{target} = nil"] if nil_fallback else None,
            )

        if category == ConversionCategory.VALUE_TO_POINTER:
            assert plan.inner is not None
            value = self._value_expression(plan.inner, source)
            return [f"{temp_name} := {value}", f"{target} = &{temp_name}"]

        if category == ConversionCategory.POINTER_TO_VALUE:
            assert plan.inner is not None
            value = self._value_expression(plan.inner, f"*{source}")
            zero_value = [
                f"var {ZERO_VALUE_NAME} {self.context.type_name(plan.target)}",
                f"{target} = {ZERO_VALUE_NAME}",
            ]
            return helper.new_if_block(
                f"{source} != nil",
                [f"{target} = {value}"],
                zero_value if nil_fallback else None,
            )

        if category == ConversionCategory.SLICE_TO_SLICE:
            assert plan.inner is not None
            element = self._emit(
                plan.inner, "v", f"{target}[i]", ELEMENT_TEMP_NAME, function_name, label, nil_fallback=False
            )
            body = [f"{target} = make({self.context.type_name(plan.target)}, len({source}))"]
            body.extend(helper.new_range_block(source, element))
            return helper.new_if_block(f"len({source}) > 0", body)

        return self._unresolved(plan, function_name, label)

    def _unresolved(self, plan: ConversionPlan, function_name: str, label: str) -> list[str]:
        source_type = self.context.type_name(plan.source)
        target_type = self.context.type_name(plan.target)
        self.context.unresolved.append(
            UnresolvedMapping(
                function_name=function_name,
                field_name=label,
                source_type=source_type,
                target_type=target_type,
                reason=plan.reason,
            )
        )
        logger.warning(
            "Unresolved mapping for %s in %s: %s -> %s (%s).",
            label,
            function_name,
            source_type,
            target_type,
            plan.reason,
        )
        return [f"// {UNRESOLVED_MARKER} for {label}: {source_type} -> {target_type} ({plan.reason})"]
