"""Tests for the field pre-pass."""

from beanlens.services.field_table import build_field_table


SOURCE = """@Service
public class OrderService {
    @Autowired
    @Qualifier("fast")
    private PaymentGateway gateway;
    @Qualifier("slow") private PaymentGateway backup;
    // private AuditLog ignored;
    private final OrderRepository repository;

    public Order load(long id) {
        Order result = repository.find(id);
        return result;
    }
}
"""


class TestFieldTable:

    def test_fields_are_keyed_by_name(self):
        fields = build_field_table(SOURCE.split('\n'))

        assert set(fields) == {"gateway", "backup", "repository"}
        assert fields["repository"].type == "OrderRepository"
        assert fields["repository"].declaration_line == 7

    def test_qualifier_from_previous_line(self):
        fields = build_field_table(SOURCE.split('\n'))

        assert fields["gateway"].qualifier == "fast"
        assert fields["repository"].qualifier is None

    def test_qualifier_on_same_line(self):
        fields = build_field_table(SOURCE.split('\n'))

        assert fields["backup"].qualifier == "slow"

    def test_range_covers_the_type_token(self):
        lines = SOURCE.split('\n')
        entry = build_field_table(lines)["gateway"]

        assert entry.range.start.line == 4
        start, end = entry.range.start.column, entry.range.end.column
        assert lines[4][start:end] == "PaymentGateway"

    def test_duplicate_names_keep_the_last_declaration(self):
        lines = [
            "class A {",
            "    private Foo handler;",
            "}",
            "class B {",
            "    private Bar handler;",
            "}",
        ]
        entry = build_field_table(lines)["handler"]

        assert entry.type == "Bar"
        assert entry.declaration_line == 4
