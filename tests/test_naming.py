from protoc_scaffold.naming import (
    clean_type_name,
    go_package_alias,
    service_or_method_name,
    strip_reply_suffix,
    strip_request_suffix,
    to_lower_camel_case,
    to_snake_case,
    to_upper_camel_case,
)


class TestCamelCase:
    def test_upper_camel_case(self):
        assert to_upper_camel_case("user_create") == "UserCreate"
        assert to_upper_camel_case("get_user_by_id") == "GetUserById"

    def test_upper_camel_case_keeps_inner_capitals(self):
        assert to_upper_camel_case("getHTTPInfo") == "GetHTTPInfo"
        assert to_upper_camel_case("UserService") == "UserService"

    def test_upper_camel_case_unicode(self):
        assert to_upper_camel_case("élan_vital") == "ÉlanVital"

    def test_upper_camel_case_uses_title_case(self):
        # digraphs and ß title-case differently than they upper-case
        assert to_upper_camel_case("ǆungla_x") == "ǅunglaX"
        assert to_upper_camel_case("ßtraße") == "Sstraße"
        assert to_upper_camel_case(to_upper_camel_case("ǆungla")) == "ǅungla"

    def test_upper_camel_case_idempotent_without_underscores(self):
        for s in ("user", "UserCreate", "userCreate", "x1"):
            once = to_upper_camel_case(s)
            assert to_upper_camel_case(once) == once

    def test_lower_camel_case(self):
        assert to_lower_camel_case("UserCreate") == "userCreate"
        assert to_lower_camel_case("user_create") == "userCreate"

    def test_lower_of_upper_is_lower_form(self):
        for s in ("user_create", "a_b_c", "order_item_list"):
            result = to_lower_camel_case(to_upper_camel_case(s))
            assert result[0].islower()
            assert result == to_lower_camel_case(s)

    def test_empty_string(self):
        assert to_upper_camel_case("") == ""
        assert to_lower_camel_case("") == ""
        assert service_or_method_name("") == ""
        assert clean_type_name("") == ""
        assert strip_request_suffix("") == ""
        assert strip_reply_suffix("") == ""

    def test_double_underscore_collapses(self):
        assert to_upper_camel_case("user__create") == "UserCreate"


class TestServiceOrMethodName:
    def test_drops_qualification(self):
        assert service_or_method_name("user_service.v1") == "UserService"
        assert service_or_method_name("Greeter") == "Greeter"


class TestCleanTypeName:
    def test_fully_qualified(self):
        assert clean_type_name(".a.b.C") == "C"
        assert clean_type_name(".user.v1.CreateUserRequest") == "CreateUserRequest"

    def test_unqualified_is_noop(self):
        assert clean_type_name("C") == "C"

    def test_relative_qualified(self):
        assert clean_type_name("google.protobuf.Empty") == "Empty"


class TestSuffixStripping:
    def test_request_suffix(self):
        assert strip_request_suffix("CreateUserRequest") == "CreateUser"

    def test_reply_suffix(self):
        assert strip_reply_suffix("CreateUserReply") == "CreateUser"

    def test_missing_suffix_returns_input(self):
        assert strip_request_suffix("CreateUserInput") == "CreateUserInput"
        assert strip_reply_suffix("CreateUserResponse") == "CreateUserResponse"

    def test_only_trailing_occurrence(self):
        assert strip_request_suffix("RequestLogRequest") == "RequestLog"


class TestHelpers:
    def test_snake_case(self):
        assert to_snake_case("UserService") == "user_service"
        assert to_snake_case("HTTPInfo") == "http_info"
        assert to_snake_case("Order") == "order"

    def test_go_package_alias(self):
        assert go_package_alias("gorm.io/gorm") == "gorm"
        assert go_package_alias("database/sql") == "sql"
        assert go_package_alias("github.com/redis/go-redis/v9") == "redis"
        assert go_package_alias("internal/domain") == "domain"
        assert go_package_alias("") == ""
