"""Generate a Go mapper implementation for an interface of conversion methods."""

from __future__ import annotations

import logging

from stos_generator import helper
from stos_generator.errors import InvalidInterfaceShapeError, UnnamedInterfaceError
from stos_generator.helper import RECEIVER_NAME, SOURCE_NAME
from stos_generator.imports import ImportCollector, assign_import_names
from stos_generator.shapes import InterfaceDescriptor, MethodDescriptor
from stos_generator.synthesizer import FieldMappingSynthesizer
from stos_generator.writer_dto import GenerationContext

logger = logging.getLogger(__name__)


def validate_interface(descriptor: InterfaceDescriptor) -> None:
    """Check that a mapper can be generated for an interface.

    Raises:
        UnnamedInterfaceError: If the interface has no name.
        InvalidInterfaceShapeError: If the interface has no methods, or a method does not take
            exactly one parameter and return exactly one result.
    """
    if not descriptor.name:
        raise UnnamedInterfaceError("The interface must have a name.")

    if not descriptor.methods:
        raise InvalidInterfaceShapeError(f"The interface {descriptor.name} declares no methods.")

    for method in descriptor.methods:
        if not method.is_single_conversion:
            raise InvalidInterfaceShapeError(
                f"Method {descriptor.name}.{method.name} must have one input parameter and one output parameter, "
                f"found {len(method.inputs)} and {len(method.outputs)}."
            )


class Writer:
    """A class that handles writing the mapper, based on a provided interface definition."""

    def __init__(self, descriptor: InterfaceDescriptor):
        """Initialize the writer with an interface definition.

        Args:
            descriptor (InterfaceDescriptor): The interface to implement.

        Raises:
            UnnamedInterfaceError: If the interface has no name.
            InvalidInterfaceShapeError: If the interface methods are not conversions.
        """
        validate_interface(descriptor)

        self.descriptor = descriptor
        self.context = GenerationContext(package_path=descriptor.package_path)
        self.synthesizer = FieldMappingSynthesizer(self.context)

        self._entry_methods: list[str] = []
        self._generated = False

        self.header = f"// Code generated by stos-generator from the {descriptor.name} interface."

    @property
    def impl_name(self) -> str:
        return helper.impl_type_name(self.descriptor.name)

    @property
    def receiver(self) -> str:
        return f"{RECEIVER_NAME} *{self.impl_name}"

    def generate(self) -> None:
        """Collect the imports, then synthesize all entry methods and their helpers."""
        if self._generated:
            return

        # Import names qualify every rendered type, so they are fixed before synthesis.
        collector = ImportCollector(self.descriptor.package_path)
        self.context.imports.update(collector.collect(self.descriptor))
        self.context.import_names.update(assign_import_names(self.context.imports))

        for method in self.descriptor.methods:
            self._entry_methods.append(self._gen_entry_method(method))

        self._generated = True

        logger.debug(
            "Generated %d entry method(s) and %d helper(s) for %s.",
            len(self._entry_methods),
            len(self.context.registry),
            self.descriptor.name,
        )

    def _gen_entry_method(self, method: MethodDescriptor) -> str:
        source, target = method.inputs[0], method.outputs[0]
        body = self.synthesizer.synthesize_entry(source, target, method.name)
        return helper.new_function(
            method.name,
            [f"{SOURCE_NAME} {self.context.type_name(source)}"],
            self.context.type_name(target),
            body,
            receiver=self.receiver,
        )

    def _gen_helper_methods(self) -> list[str]:
        methods = []
        for entry in self.context.registry.entries:
            assert entry.body is not None, f"Helper {entry.name} was never synthesized."
            methods.append(
                helper.new_function(
                    entry.name,
                    [f"{SOURCE_NAME} {self.context.type_name(entry.source)}"],
                    self.context.type_name(entry.target),
                    entry.body,
                    receiver=self.receiver,
                )
            )
        return methods

    def _gen_constructor(self) -> str:
        return helper.new_function(
            helper.constructor_name(self.descriptor.name),
            return_type=self.descriptor.name,
            body=[f"return &{self.impl_name}{{}}"],
        )

    def dumps_go(self) -> str:
        """Generates the Go source of the mapper.

        Returns:
            str: The output string.
        """
        self.generate()

        out: list[str] = []
        out.append(f"{self.header}\n\n")
        out.append(f"package {self.descriptor.package_name}\n\n")
        out.append(helper.new_import_block(self.context.sorted_imports, self.context.import_names))
        out.append(helper.new_struct_declaration(self.impl_name))
        out.append(self._gen_constructor())
        out.extend(self._entry_methods)
        out.extend(self._gen_helper_methods())

        return "".join(out).rstrip("\n") + "\n"


def generate_mapper(descriptor: InterfaceDescriptor) -> str:
    """Entry-point for generating the Go mapper of an interface.

    Every call uses a fresh generation context.

    Args:
        descriptor (InterfaceDescriptor): The interface to implement.

    Returns:
        str: The Go source.
    """
    writer = Writer(descriptor)
    output = writer.dumps_go()

    for unresolved in writer.context.unresolved:
        logger.info(
            "Complete %s.%s manually in the generated mapper.",
            unresolved.function_name,
            unresolved.field_name,
        )

    return output
