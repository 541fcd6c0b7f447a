"""Tests for the single-line predicates and extractors."""

import pytest

from beanlens.services.line_classifier import (
    classify_line,
    declares_variable,
    extract_qualifier,
    has_convention_constructor_marker,
    has_factory_marker,
    has_injection_marker,
    has_stereotype_marker,
    is_constructor_declaration,
    is_final_instance_field,
    is_skippable,
    iter_argument_tokens,
    match_class_declaration,
    match_field_declaration,
    match_method_declaration,
    qualifier_before_column,
)


class TestSkippableLines:

    @pytest.mark.parametrize("line", ["", "    ", "// @Service", "/* @Bean */", "   * @Autowired"])
    def test_blank_and_comment_lines_are_skipped(self, line):
        assert is_skippable(line)
        assert classify_line(line).skip

    def test_code_line_is_not_skipped(self):
        info = classify_line("    private OrderRepository repo;")
        assert not info.skip
        assert info.field.name == "repo"


class TestMarkers:

    def test_qualifier_literal_is_extracted_without_quotes(self):
        assert extract_qualifier('@Qualifier("fast") PaymentGateway gw') == "fast"
        assert extract_qualifier('@Qualifier( "slow" )') == "slow"
        assert extract_qualifier("@Autowired") is None

    def test_stereotype_markers(self):
        assert has_stereotype_marker("@Service")
        assert has_stereotype_marker("@RestController")
        assert has_stereotype_marker("@Configuration")
        assert not has_stereotype_marker("@ConfigurationProperties(prefix = \"app\")")
        assert not has_stereotype_marker("@Bean")

    def test_factory_and_injection_markers(self):
        assert has_factory_marker("    @Bean")
        assert has_factory_marker('    @Bean(name = "legacy")')
        assert not has_factory_marker("    @BeanPostProcessor")
        assert has_injection_marker("@Autowired")
        assert has_injection_marker("@Inject")
        assert has_injection_marker("@Resource")
        assert not has_injection_marker("@Value(\"${x}\")")

    def test_convention_constructor_marker(self):
        assert has_convention_constructor_marker("@RequiredArgsConstructor")
        assert has_convention_constructor_marker("@AllArgsConstructor")
        assert not has_convention_constructor_marker("@NoArgsConstructor")


class TestDeclarations:

    def test_class_declaration(self):
        assert match_class_declaration("public class OrderService {") == ("OrderService", 13)
        assert match_class_declaration("public interface PaymentGateway {") == ("PaymentGateway", 17)
        assert match_class_declaration("    private OrderRepository repo;") is None

    def test_field_declaration_with_modifiers(self):
        line = "    private final OrderRepository repo;"
        match = match_field_declaration(line)
        assert match.type == "OrderRepository"
        assert match.name == "repo"
        assert line[match.type_column:match.type_column + len(match.type)] == "OrderRepository"

    def test_field_declaration_with_generic_type(self):
        match = match_field_declaration("    private List<Handler> handlers;")
        assert match.type == "List<Handler>"
        assert match.name == "handlers"

    def test_control_flow_statements_are_not_fields(self):
        assert match_field_declaration("        return result;") is None
        assert match_field_declaration("        this.repo = repo;") is None

    def test_method_declaration(self):
        match = match_method_declaration("    public PaymentGateway stripeGateway() {")
        assert match.return_type == "PaymentGateway"
        assert match.name == "stripeGateway"

    def test_method_declaration_after_inline_annotation(self):
        match = match_method_declaration("    @Bean public Clock clock() {")
        assert match.return_type == "Clock"
        assert match.name == "clock"

    @pytest.mark.parametrize("line", [
        "        return build(config);",
        "        if (ready) {",
        "        throw new IllegalStateException(message);",
        "    @Bean",
    ])
    def test_statements_are_not_method_declarations(self, line):
        assert match_method_declaration(line) is None

    def test_constructor_declaration(self):
        assert is_constructor_declaration("    public OrderService(OrderRepository repo) {", "OrderService")
        assert is_constructor_declaration("    @Autowired public OrderService(Repo r) {", "OrderService")
        assert not is_constructor_declaration("        return new OrderService(repo);", "OrderService")
        assert not is_constructor_declaration("    public OrderService orderService() {", "OrderService")
        assert not is_constructor_declaration("    public OrderService(Repo r) {", "")

    def test_argument_tokens(self):
        line = '    public OrderService(@Qualifier("fast") PaymentGateway gw, OrderRepository repo) {'
        tokens = [(arg_type, name) for arg_type, name, _ in iter_argument_tokens(line)]
        assert tokens == [("PaymentGateway", "gw"), ("OrderRepository", "repo")]

    def test_final_instance_field(self):
        assert is_final_instance_field("    private final OrderRepository repo;")
        assert not is_final_instance_field("    private static final Logger log = null;")
        assert not is_final_instance_field("    private OrderRepository repo;")


class TestParameterQualifiers:

    LINE = '    public Router(@Qualifier("fast") PaymentGateway primary, @Qualifier("slow") PaymentGateway backup) {'

    def test_qualifier_belongs_to_the_following_parameter(self):
        first = self.LINE.index("PaymentGateway")
        second = self.LINE.rindex("PaymentGateway")

        assert qualifier_before_column(self.LINE, first) == "fast"
        assert qualifier_before_column(self.LINE, second) == "slow"

    def test_unqualified_parameter_after_qualified_one(self):
        line = '    public Router(@Qualifier("fast") PaymentGateway primary, PaymentGateway backup) {'

        assert qualifier_before_column(line, line.rindex("PaymentGateway")) is None

    def test_declares_variable(self):
        assert declares_variable('            @Qualifier("fast") PaymentGateway primary,')
        assert declares_variable("    private int retries;")
        assert not declares_variable('    @Qualifier("fast")')
        assert not declares_variable("    public Router(")
