"""Tests for the navigation facade: analysis, resolution and lookups across documents."""

import asyncio

import pytest

from beanlens.models.bean_models import BeanOrigin, ResolutionStatus, SourcePosition
from beanlens.services.bean_navigator import BeanNavigator

from fakes import InMemoryDocuments, InMemoryFileSearch, StubSymbolSearch, loc


FOO = "public class Foo {\n}\n"

CLIENT = """@Service
public class Client {
    @Autowired
    private Gateway gateway;
}
"""

DUPLICATE_BEANS = """@Configuration
public class Beans {
    @Bean
    public Clock utcClock() {
        return Clock.systemUTC();
    }

    @Bean
    public Clock zoneClock() {
        return Clock.systemDefaultZone();
    }
}
"""


@pytest.fixture
def files(app_config_source, gateway_config_source):
    return {
        "src/Foo.java": FOO,
        "src/AppConfig.java": app_config_source,
        "src/GatewayConfig.java": gateway_config_source,
        "src/Client.java": CLIENT,
        "src/Beans.java": DUPLICATE_BEANS,
    }


def make_navigator(files, test_settings, symbols=None):
    file_search = InMemoryFileSearch(files)
    navigator = BeanNavigator(symbols or StubSymbolSearch(), file_search, InMemoryDocuments(files), test_settings)
    return navigator, file_search


class TestAnalysis:

    def test_external_bean_reported_once_lookup_finishes(self, files, test_settings):
        navigator, _ = make_navigator(files, test_settings)
        resolutions = []
        navigator.subscribe(lambda doc, name, location: resolutions.append((doc, name, location)))

        async def run():
            first = await navigator.analyze("src/Foo.java", FOO)
            await navigator.wait_for_lookups("src/Foo.java")
            second = await navigator.analyze("src/Foo.java", FOO)
            return first, second

        first, second = asyncio.run(run())

        assert first.pending_lookups == ["Foo"]
        assert first.beans == []
        assert second.pending_lookups == []
        assert len(second.beans) == 1
        bean = second.beans[0]
        assert bean.origin == BeanOrigin.EXTERNAL_CONFIGURATION
        assert bean.description == "Defined in External Configuration"
        assert (bean.range.start.line, bean.range.start.column) == (0, 13)
        doc, name, location = resolutions[0]
        assert (doc, name) == ("src/Foo.java", "Foo")
        assert (location.file_id, location.range.start.line) == ("src/AppConfig.java", 10)

    def test_changed_text_invalidates_cached_lookups(self, files, test_settings):
        navigator, _ = make_navigator(files, test_settings)
        edited = "public class Foo {\n    int size;\n}\n"

        async def run():
            await navigator.analyze("src/Foo.java", FOO)
            await navigator.wait_for_lookups("src/Foo.java")
            return await navigator.analyze("src/Foo.java", edited)

        analysis = asyncio.run(run())

        assert analysis.pending_lookups == ["Foo"]
        assert navigator.session("src/Foo.java").cache.generation == 1

    def test_stereotype_class_needs_no_external_lookup(self, files, test_settings):
        navigator, file_search = make_navigator(files, test_settings)

        analysis = asyncio.run(navigator.analyze("src/Client.java", CLIENT))

        assert analysis.pending_lookups == []
        assert [bean.origin for bean in analysis.beans] == [BeanOrigin.STEREOTYPE_ANNOTATION]
        assert [site.consumed_type for site in analysis.injections] == ["Gateway"]
        assert len(navigator.session("src/Client.java").cache) == 0
        assert file_search.calls == 0

    def test_versions_increase_per_document(self, files, test_settings):
        navigator, _ = make_navigator(files, test_settings)

        async def run():
            await navigator.analyze("src/Client.java", CLIENT)
            second = await navigator.analyze("src/Client.java", CLIENT)
            explicit = await navigator.analyze("src/Client.java", CLIENT, version=7)
            return second, explicit

        second, explicit = asyncio.run(run())

        assert second.version == 2
        assert explicit.version == 7

    def test_documents_keep_separate_caches(self, files, test_settings):
        navigator, _ = make_navigator(files, test_settings)

        async def run():
            await navigator.analyze("src/Foo.java", FOO)
            await navigator.analyze("src/Client.java", CLIENT)
            await navigator.wait_for_lookups("src/Foo.java")
            await navigator.analyze("src/Client.java", CLIENT.replace("gateway;", "paymentGateway;"))

        asyncio.run(run())

        assert navigator.session("src/Foo.java").cache is not navigator.session("src/Client.java").cache
        assert "Foo" in navigator.session("src/Foo.java").cache
        assert navigator.session("src/Foo.java").cache.generation == 0

    def test_close_document_forgets_the_session(self, files, test_settings):
        navigator, _ = make_navigator(files, test_settings)

        async def run():
            await navigator.analyze("src/Foo.java", FOO)
            navigator.close_document("src/Foo.java")

        asyncio.run(run())

        assert navigator.session("src/Foo.java").scan is None

    def test_scheduler_publishes_latest_analysis(self, files, test_settings):
        navigator, _ = make_navigator(files, test_settings)
        published = []

        async def run():
            scheduler = navigator.scheduler(published.append)
            scheduler.submit("src/Client.java", "public class Client {}\n")
            scheduler.submit("src/Client.java", CLIENT)
            await scheduler.flush("src/Client.java")

        asyncio.run(run())

        assert len(published) == 1
        assert published[0].version == 2
        assert published[0].injections[0].variable_name == "gateway"


class TestResolution:

    def test_local_primary_definition(self, files, app_config_source, test_settings):
        navigator, _ = make_navigator(files, test_settings)

        async def run():
            await navigator.analyze("src/AppConfig.java", app_config_source)
            return await navigator.resolve("src/AppConfig.java", "Foo", SourcePosition(line=10, column=11))

        result = asyncio.run(run())

        assert result.is_resolved
        assert (result.location.file_id, result.location.range.start.line) == ("src/AppConfig.java", 10)

    @pytest.mark.parametrize("qualifier, expected_line", [("fast", 4), (None, 9)])
    def test_local_qualifier_selection(self, files, gateway_config_source, test_settings, qualifier, expected_line):
        navigator, _ = make_navigator(files, test_settings)

        async def run():
            await navigator.analyze("src/GatewayConfig.java", gateway_config_source)
            return await navigator.resolve(
                "src/GatewayConfig.java", "PaymentGateway", SourcePosition(line=0, column=0), qualifier)

        result = asyncio.run(run())

        assert result.location.range.start.line == expected_line

    def test_external_definition(self, files, test_settings):
        navigator, _ = make_navigator(files, test_settings)

        result = asyncio.run(navigator.resolve("src/Client.java", "Foo", SourcePosition(line=3, column=12)))

        assert result.is_resolved
        assert (result.location.file_id, result.location.range.start.line) == ("src/AppConfig.java", 10)

    def test_unknown_type_is_unresolved_not_an_error(self, files, test_settings):
        navigator, _ = make_navigator(files, test_settings)

        result = asyncio.run(navigator.resolve("src/Client.java", "Missing", SourcePosition(line=3, column=12)))

        assert result.status == ResolutionStatus.UNRESOLVED
        assert result.message == "Could not find definition for Missing"

    def test_several_local_candidates_are_ambiguous(self, files, test_settings):
        navigator, _ = make_navigator(files, test_settings)

        async def run():
            await navigator.analyze("src/Beans.java", DUPLICATE_BEANS)
            return await navigator.resolve("src/Beans.java", "Clock", SourcePosition(line=3, column=11))

        result = asyncio.run(run())

        assert result.status == ResolutionStatus.AMBIGUOUS
        assert [candidate.range.start.line for candidate in result.candidates] == [3, 8]
        assert result.location.range.start.line == 3
        assert result.message == "Several beans of type Clock match; choose one"


class TestNavigation:

    def test_go_to_bean_falls_back_to_annotated_implementation(self, files, test_settings):
        files["src/StripeGateway.java"] = "@Component\npublic class StripeGateway implements Gateway {\n}\n"
        symbols = StubSymbolSearch(implementations=[loc("src/StripeGateway.java", 1, 13, 13)])
        navigator, _ = make_navigator(files, test_settings, symbols)

        result = asyncio.run(navigator.go_to_bean("src/Client.java", 3, "Gateway"))

        assert result.is_resolved
        assert result.location.file_id == "src/StripeGateway.java"
        assert result.message == "Bean defined via Annotation in Gateway"

    def test_go_to_bean_without_any_definition(self, files, test_settings):
        navigator, _ = make_navigator(files, test_settings)

        result = asyncio.run(navigator.go_to_bean("src/Client.java", 3, "Gateway"))

        assert result.status == ResolutionStatus.UNRESOLVED
        assert result.message == "Could not find @Bean or Stereotype for Gateway"

    def test_go_to_class(self, files, test_settings):
        symbols = StubSymbolSearch(implementations=[loc("src/StripeGateway.java", 1, 13, 13)])
        navigator, _ = make_navigator(files, test_settings, symbols)

        result = asyncio.run(navigator.go_to_class("src/Client.java", 3, "Gateway"))

        assert result.location.file_id == "src/StripeGateway.java"
