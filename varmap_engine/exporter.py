"""
Exporter - stable text rendering of bindings and provenance.

Output is sorted by configuration name, then relation kind, then source
variable, so the same data always renders to the same text. Nothing here
mutates state or influences resolution.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from varmap_engine.bindings.models import BindingSet, RelationKind
from varmap_engine.evaluator import ProvenanceTrace


def _names(values: Sequence[str]) -> str:
    """Render a name sequence as ('a', 'b')."""
    return "(" + ", ".join(f"'{v}'" for v in values) + ")"


def _render_binding_set(bindings: BindingSet) -> List[str]:
    lines = [f"'{bindings.config_name}': {{"]
    lines.append(f"\tprimary_inputs: {_names(bindings.primary_inputs)}")
    lines.append(f"\tsecondary_inputs: {_names(bindings.secondary_inputs)}")
    lines.append(f"\tevaluated_inputs: {_names(bindings.evaluated_inputs)}")

    lines.append("\tequations: {")
    for eqn in bindings.equations:
        form = f" [{eqn.ui_form}]" if eqn.ui_form else ""
        lines.append(f"\t\t{eqn.name}{form}: {_names(eqn.ui_inputs)} -> {_names(eqn.ui_outputs)}")
    lines.append("\t}")

    lines.append("\tsecondary_cmods: {")
    for cmod in bindings.secondary_modules:
        form = f" [{cmod.ui_form}]" if cmod.ui_form else ""
        lines.append(f"\t\t{cmod.module}{form}: {_names(cmod.ui_inputs)} -> {_names(cmod.ui_outputs)}")
    lines.append("\t}")

    for kind in sorted(RelationKind, key=lambda k: k.value):
        pairs = sorted(bindings.relation(kind), key=lambda b: (b.source, b.target))
        lines.append(f"\t{kind.value}: {{")
        for binding in pairs:
            lines.append(f"\t\t'{binding.source}': '{binding.target}'")
        lines.append("\t}")

    lines.append("}")
    return lines


def export_bindings(binding_sets: Iterable[BindingSet]) -> str:
    """Render binding sets as text, sorted by configuration name."""
    lines = ["config_variables_info = {"]
    for bindings in sorted(binding_sets, key=lambda b: b.config_name):
        lines.extend("\t" + line for line in _render_binding_set(bindings))
    lines.append("}")
    return "\n".join(lines) + "\n"


def export_provenance(trace: ProvenanceTrace) -> str:
    """Render a provenance trace as text.

    Steps are listed in evaluation order and variables in name order, each
    with the invocation that last wrote it and its order position.
    """
    lines = [f"provenance '{trace.config_name}' = {{", "\tsteps: {"]
    for step in trace.steps:
        lines.append(
            f"\t\t{step.position}: {step.invocation} "
            f"{_names(step.inputs)} -> {_names(step.outputs)}"
        )
    lines.append("\t}")

    lines.append("\tvariables: {")
    for name in sorted(trace.latest):
        entry = trace.latest[name]
        via = f" via '{entry.alias_of}'" if entry.alias_of else ""
        lines.append(
            f"\t\t'{name}': {entry.producer} ({entry.kind.value} @{entry.position}){via}"
        )
    lines.append("\t}")
    lines.append("}")
    return "\n".join(lines) + "\n"
