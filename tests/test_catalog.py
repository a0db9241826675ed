"""Tests for the follow-up catalog and placeholder personalization."""

import pytest

from inquiry_engine.automation.catalog import (
    DEFAULT_COPY,
    SEQUENCE_DELAYS,
    SequenceCatalog,
    build_sequence,
    default_sequences,
)
from inquiry_engine.automation.personalization import (
    build_token_values,
    find_tokens,
    personalize,
    text_to_html,
    unknown_tokens,
)
from inquiry_engine.config import BrandConfig
from inquiry_engine.errors import CatalogError
from inquiry_engine.schemas.email_schema import STAGE_ORDER, EmailTemplateType
from inquiry_engine.schemas.service_schema import ServiceType

BRAND = BrandConfig(artist_name="Rrish", site_url="https://www.rrishmusic.com")


class TestDefaultCatalog:
    def test_every_service_has_a_sequence(self, catalog):
        assert set(catalog.services()) == set(ServiceType)
        assert len(catalog) == 4
        assert catalog.template_count == 20

    def test_stages_in_order(self, catalog):
        for service in ServiceType:
            stages = tuple(t.template_type for t in catalog.get(service).templates)
            assert stages == STAGE_ORDER

    @pytest.mark.parametrize("service,final_delay,days", [
        (ServiceType.PERFORMANCE, 336, 14),
        (ServiceType.TEACHING, 504, 21),
        (ServiceType.COLLABORATION, 240, 10),
        (ServiceType.GENERAL, 336, 14),
    ])
    def test_final_delays(self, catalog, service, final_delay, days):
        sequence = catalog.get(service)
        assert sequence.templates[-1].delay_hours == final_delay
        assert sequence.total_duration_days == days

    def test_confirmation_goes_out_immediately(self, catalog):
        for service in ServiceType:
            assert catalog.get(service).templates[0].delay_hours == 0

    def test_templates_are_tagged(self, catalog):
        sequence = catalog.get(ServiceType.TEACHING)
        assert sequence.templates[0].tags == ("teaching", "confirmation")
        assert sequence.templates[2].tags == ("teaching", "follow_up")
        assert sequence.templates[-1].tags == ("teaching", "final")

    def test_html_is_rendered_from_text(self, catalog):
        template = catalog.get(ServiceType.GENERAL).template(EmailTemplateType.IMMEDIATE_CONFIRMATION)
        assert template.html_content.startswith("<p>Hi {{name}},</p>")
        assert "Cheers,<br>{{artist}}<br>{{site_url}}" in template.html_content
        assert template.text_content.endswith("Cheers,\n{{artist}}\n{{site_url}}")

    def test_catalog_only_uses_known_tokens(self, catalog):
        for service in ServiceType:
            for template in catalog.get(service).templates:
                assert unknown_tokens(template.text_content) == set()
                assert unknown_tokens(template.subject) == set()

    def test_version(self, catalog):
        assert catalog.version == "2025.1"
        assert ServiceType.TEACHING in catalog


class TestCatalogValidation:
    def _copy(self, service=ServiceType.GENERAL):
        return list(DEFAULT_COPY[service])

    def test_duplicate_service_rejected(self):
        catalog = SequenceCatalog()
        with pytest.raises(CatalogError, match="already registered"):
            catalog.register(default_sequences()[0])

    def test_wrong_stage_count(self):
        with pytest.raises(CatalogError, match="exactly 5 stages"):
            build_sequence(ServiceType.GENERAL, self._copy()[:4], (0, 24, 72, 168))

    def test_first_delay_must_be_zero(self):
        sequence = build_sequence(ServiceType.GENERAL, self._copy(), (1, 24, 72, 168, 336))
        with pytest.raises(CatalogError, match="send immediately"):
            SequenceCatalog([sequence])

    def test_delays_must_increase(self):
        sequence = build_sequence(ServiceType.GENERAL, self._copy(), (0, 24, 24, 168, 336))
        with pytest.raises(CatalogError, match="strictly increase"):
            SequenceCatalog([sequence])

    def test_unknown_placeholder_rejected(self):
        copy = self._copy()
        copy[1] = ("Hello {{first_name}}", copy[1][1])
        sequence = build_sequence(ServiceType.GENERAL, copy, SEQUENCE_DELAYS[ServiceType.GENERAL])
        with pytest.raises(CatalogError, match="first_name"):
            SequenceCatalog([sequence])

    def test_partial_catalog(self):
        catalog = SequenceCatalog([default_sequences()[1]], version="test")
        assert catalog.services() == [ServiceType.TEACHING]
        assert catalog.get(ServiceType.PERFORMANCE) is None


class TestPersonalization:
    def setup_method(self):
        self.values = build_token_values("Emma", "emma@example.com", ServiceType.TEACHING, BRAND)

    def test_find_tokens_tolerates_spaces(self):
        assert find_tokens("Hi {{ name }}, from {{artist}}") == {"name", "artist"}

    def test_personalize(self):
        assert personalize("Hi {{name}}, welcome to {{ service }}", self.values) == (
            "Hi Emma, welcome to Guitar Lessons"
        )

    def test_brand_tokens(self):
        assert personalize("{{artist}} - {{site_url}} - {{email}}", self.values) == (
            "Rrish - https://www.rrishmusic.com - emma@example.com"
        )

    def test_html_values_are_escaped(self):
        values = build_token_values("<b>Tom & Jerry</b>", "t@example.com", ServiceType.GENERAL, BRAND)
        html = personalize("<p>Hi {{name}}</p>", values, escape_html=True)
        assert html == "<p>Hi &lt;b&gt;Tom &amp; Jerry&lt;/b&gt;</p>"

    def test_text_values_are_not_escaped(self):
        values = build_token_values("Tom & Jerry", "t@example.com", ServiceType.GENERAL, BRAND)
        assert personalize("Hi {{name}}", values) == "Hi Tom & Jerry"

    def test_unknown_token_raises(self):
        with pytest.raises(CatalogError, match="first_name"):
            personalize("Hi {{first_name}}", {"first_name": "Emma"})

    def test_missing_value_raises(self):
        with pytest.raises(CatalogError):
            personalize("Hi {{name}}", {})

    def test_text_to_html(self):
        assert text_to_html("Hi {{name}},\n\nLine one\nLine two & more") == (
            "<p>Hi {{name}},</p>\n<p>Line one<br>Line two &amp; more</p>"
        )
