"""Tests for procedure template loading and token substitution."""

import pytest

from fhirschema.control.templates import (
    Replacer,
    read_template,
    resource_replacers,
    template_provider,
)
from fhirschema.exceptions import TemplateError


class TestReplacer:
    def test_apply(self):
        assert Replacer("X", "1").apply("a {{X}} b {{X}}") == "a 1 b 1"

    def test_leaves_other_tokens(self):
        assert Replacer("X", "1").apply("{{Y}}") == "{{Y}}"

    def test_resource_replacers(self):
        text = "{{LC_RESOURCE_TYPE}}_add_resource for {{RESOURCE_TYPE}}"
        for replacer in resource_replacers("MedicationRequest"):
            text = replacer.apply(text)
        assert text == "medicationrequest_add_resource for MedicationRequest"


class TestReadTemplate:
    def test_schema_names_substituted(self):
        body = read_template("ADM", "DATA", "add_code_system.sql")
        assert "DATA.add_code_system" in body
        assert "ADM.SV_TENANT_ID," in body
        assert "{{" not in body

    def test_session_variable_substituted(self):
        body = read_template(
            "ADM", "DATA", "add_code_system.sql", session_variable="SV_X"
        )
        assert "VALUES (ADM.SV_X, p_code_system_id" in body

    def test_resource_template(self):
        body = read_template(
            "ADM", "DATA", "add_resource_template.sql", resource_replacers("Patient")
        )
        assert "DATA.patient_add_resource" in body
        assert "{{" not in body

    def test_missing_template(self):
        with pytest.raises(TemplateError, match="no_such.sql"):
            read_template("ADM", "DATA", "no_such.sql")

    def test_provider_is_lazy(self):
        provider = template_provider("ADM", "DATA", "no_such.sql")
        with pytest.raises(TemplateError):
            provider()

    def test_provider_reads_template(self):
        provider = template_provider("ADM", "DATA", "add_resource_type.sql")
        assert "DATA.add_resource_type" in provider()

    def test_provider_carries_session_variable(self):
        provider = template_provider(
            "ADM",
            "DATA",
            "add_resource_template.sql",
            resource_replacers("Patient"),
            session_variable="SV_X",
        )
        body = provider()
        assert body.count("ADM.SV_X,") == 4
