import pytest

from beanlens.core.config import Settings


APP_CONFIG = """@Configuration
public class AppConfig {

    @Bean
    public Bar bar() {
        return new Bar();
    }

    @Bean
    @Primary
    public Foo foo() {
        return new Foo();
    }
}
"""

GATEWAY_CONFIG = """@Configuration
public class GatewayConfig {
    @Bean
    @Qualifier("fast")
    public PaymentGateway fastGateway() {
        return new FastGateway();
    }

    @Bean
    public PaymentGateway defaultGateway() {
        return new DefaultGateway();
    }
}
"""


@pytest.fixture
def test_settings():
    """Settings with a short debounce so scheduler tests run quickly."""
    return Settings(SCAN_DEBOUNCE_MS=10)


@pytest.fixture
def app_config_source():
    return APP_CONFIG


@pytest.fixture
def gateway_config_source():
    return GATEWAY_CONFIG
