"""
Test fixtures for catalog, binding store and resolution testing.

Provides fixtures for:
- The Biopower-LCOE Calculator scenario (catalog, store, callables)
- A parsed variable map mapping and the same map written to disk
"""

from __future__ import annotations

import copy

import pytest
import yaml

BIOPOWER = "Biopower-LCOE Calculator"

VARIABLE_MAP = {
    "variables": {
        "biomass_feed_rate": {"description": "Biomass feed rate"},
        "biomass_moisture": {"default": 0.2, "referenced_by": ["biomass"]},
        "system_capacity": {},
        "inverter_num_units": {},
        "resource_file": {},
        "ui_annual_ghi": {},
    },
    "ui_forms": {
        "Biopower Feedstock": {
            "defaults": {"biomass_feed_rate_pct": 0.8},
            "equations": [
                {
                    "name": "biomass_feed_rate",
                    "inputs": ["biomass_feed_rate_pct"],
                    "outputs": ["biomass_feed_rate"],
                }
            ],
        },
        "PV System Design": {
            "defaults": {"system_capacity": 100.0, "inverter_capacity": 20.0},
            "equations": [
                {
                    "name": "inverter_count",
                    "inputs": ["system_capacity", "inverter_capacity"],
                    "outputs": ["inverter_count"],
                }
            ],
        },
        "Location and Resource": {
            "defaults": {"solar_resource_file": "weather.csv"},
            "secondary_modules": [
                {"module": "solar_resource", "inputs": ["resource_file"], "outputs": ["annual_ghi"]}
            ],
        },
    },
    "modules": {
        "biomass": {"inputs": ["biomass_feed_rate", "biomass_moisture"]},
        "pvsamv1": {"inputs": ["system_capacity", "inverter_num_units", "dc_ac_ratio"]},
        "solar_resource": {"inputs": ["resource_file"], "outputs": ["annual_ghi"]},
    },
    "configurations": {
        BIOPOWER: {
            "pages": [{"sidebar_title": "Feedstock", "common_uiforms": ["Biopower Feedstock"]}],
            "primary_modules": ["biomass", "lcoefcr"],
            "primary_inputs": ["biomass_feed_rate", "biomass_moisture"],
            "bindings": {
                "eqn_outputs_to_primary": [["biomass_feed_rate", "biomass_feed_rate"]],
            },
        },
        "Flat Plate PV-Commercial": {
            "pages": [
                {"sidebar_title": "Location", "common_uiforms": ["Location and Resource"]},
                {"sidebar_title": "System Design", "common_uiforms": ["PV System Design"]},
            ],
            "primary_modules": ["pvsamv1", "cashloan"],
            "secondary_modules": ["solar_resource"],
            "primary_inputs": ["system_capacity"],
            "secondary_inputs": ["solar_resource_file"],
            "evaluated_inputs": ["inverter_count"],
            "bindings": {
                "ssc_to_eval": [["inverter_count", "inverter_num_units"]],
                "ui_to_secondary": [["solar_resource_file", "resource_file"]],
                "secondary_outputs_to_ui": [["annual_ghi", "ui_annual_ghi"]],
            },
        },
    },
}


@pytest.fixture
def biopower_catalog():
    """Unfrozen catalog with the two Biopower scenario variables."""
    from varmap_engine.catalog import VariableCatalog, VariableSpec

    catalog = VariableCatalog()
    catalog.register(VariableSpec(name="biomass_feed_rate_pct"))
    catalog.register(VariableSpec(name="biomass_feed_rate"))
    return catalog


@pytest.fixture
def biopower_store(biopower_catalog):
    """Store holding only the Biopower-LCOE Calculator configuration."""
    from varmap_engine.bindings import BindingStore, Configuration, EquationInfo

    store = BindingStore(biopower_catalog)
    store.register_configuration(Configuration(name=BIOPOWER, primary_modules=["biomass"]))
    store.add_primary_input(BIOPOWER, "biomass_feed_rate")
    store.add_equation(
        BIOPOWER, EquationInfo.create(["biomass_feed_rate_pct"], ["biomass_feed_rate"])
    )
    store.add_binding(BIOPOWER, "eqn_outputs_to_primary", "biomass_feed_rate", "biomass_feed_rate")
    return store


@pytest.fixture
def biopower_callables():
    """Callables for the Biopower equation; the feed rate is pct * 100."""
    from varmap_engine.evaluator import CallableRegistry

    callables = CallableRegistry()

    @callables.equation("biomass_feed_rate")
    def biomass_feed_rate(values):
        return {"biomass_feed_rate": values["biomass_feed_rate_pct"] * 100}

    return callables


@pytest.fixture
def pv_callables(biopower_callables):
    """Callables for every invocation in the variable map fixture."""
    biopower_callables.register_equation(
        "inverter_count",
        lambda v: {"inverter_count": v["system_capacity"] / v["inverter_capacity"]},
    )
    biopower_callables.register_module("solar_resource", lambda v: {"annual_ghi": 1800.0})
    return biopower_callables


@pytest.fixture
def variable_map():
    """Deep copy of the variable map so tests can break it freely."""
    return copy.deepcopy(VARIABLE_MAP)


@pytest.fixture
def static_data(variable_map):
    """Frozen static data loaded from the variable map fixture."""
    from varmap_engine.loader import load_static_data_from_mapping

    return load_static_data_from_mapping(variable_map)


@pytest.fixture
def variable_map_file(tmp_path, variable_map):
    """The variable map fixture written to a YAML file."""
    path = tmp_path / "variable_map.yaml"
    path.write_text(yaml.safe_dump(variable_map, sort_keys=False))
    return path
