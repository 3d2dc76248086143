import os

from protoc_scaffold.generator.common import RenderOptions
from protoc_scaffold.generator.data_generator import generate_data, generate_data_models, generate_data_repo
from protoc_scaffold.models import FieldDescriptor, MessageDescriptor, MethodDescriptor, ServiceDescriptor


def _make_service(name="UserService", go_package="github.com/acme/api/user/v1") -> ServiceDescriptor:
    return ServiceDescriptor(
        name=name,
        go_package=go_package,
        methods=[
            MethodDescriptor(
                name="CreateUser",
                request_type_full="CreateUserRequest",
                response_type_full="CreateUserReply",
                request_type_short="CreateUser",
                response_type_short="CreateUser",
            ),
            MethodDescriptor(
                name="GetUser",
                request_type_full="GetUserRequest",
                response_type_full="UserInfo",
                request_type_short="GetUser",
                response_type_short="UserInfo",
            ),
        ],
        messages=[
            MessageDescriptor("CreateUserRequest", [
                FieldDescriptor("user_name", "string", 1),
                FieldDescriptor("address", "Address", 2),
            ]),
            MessageDescriptor("HTTPRule", [FieldDescriptor("path", "string", 1)]),
        ],
    )


class TestRepo:
    def test_defaults(self):
        result = generate_data_repo(_make_service(), RenderOptions())

        assert result.startswith("package data\n")
        assert '\t"gorm.io/gorm"\n' in result
        assert '\t_ "github.com/acme/api/user/v1"\n' in result
        assert '\t"internal/domain"\n' in result
        assert '"github.com/go-kratos/kratos/v2/log"' in result
        assert "type UserServiceRepoImpl struct {" in result
        assert "\tdb    *gorm.DB\n" in result
        assert "cache" not in result
        assert ") domain.UserServiceRepo {" in result
        assert "\t\tlog:   log.NewHelper(logger),\n" in result

    def test_methods_use_domain_types(self):
        result = generate_data_repo(_make_service(), RenderOptions())

        assert (
            "func (r *UserServiceRepoImpl) CreateUser(ctx context.Context, req *domain.CreateUser) "
            "(*domain.CreateUser, error) {" in result
        )
        assert "(*domain.UserInfo, error) {" in result
        assert "result := &domain.UserInfo{}" in result
        assert "// GetUser implements UserServiceRepo.GetUser." in result
        assert 'r.log.WithContext(ctx).Infof("CreateUser data layer start, req: %+v", req)' in result

    def test_custom_packages(self):
        options = RenderOptions(
            domain_pkg="github.com/acme/app/internal/biz",
            proto_pkg="github.com/acme/api/override/v1",
            db_pkg="database/sql",
            cache_pkg="github.com/redis/go-redis/v9",
        )
        result = generate_data_repo(_make_service(), options)

        assert '\t"database/sql"\n' in result
        assert '\t"github.com/redis/go-redis/v9"\n' in result
        assert '_ "github.com/acme/api/override/v1"' in result
        assert "github.com/acme/api/user/v1" not in result
        assert "\tdb    *sql.DB\n" in result
        assert "\tcache *redis.Client\n" in result
        assert "\tcache *redis.Client,\n" in result
        assert "req *biz.CreateUser" in result
        assert ") biz.UserServiceRepo {" in result
        assert "// Query the database and cache and map the result." in result

    def test_no_proto_package(self):
        result = generate_data_repo(_make_service(go_package=""), RenderOptions())
        assert '_ "' not in result

    def test_without_logger(self):
        result = generate_data_repo(_make_service(), RenderOptions(use_logger=False))

        assert "kratos/v2/log" not in result
        assert "r.log" not in result
        assert "logger log.Logger" not in result

    def test_without_database(self):
        result = generate_data_repo(_make_service(), RenderOptions(db_pkg=""))
        assert ".DB" not in result
        assert "gorm" not in result


class TestDataModels:
    def test_table_models(self):
        result = generate_data_models(_make_service())

        assert result.startswith("package data\n")
        assert '"time"' in result
        assert "type CreateUserRequest struct {" in result
        assert '\tUserName string `json:"user_name"`\n' in result
        assert '\tAddress *Address `json:"address"` // Address\n' in result
        assert "\tCreatedAt time.Time\n" in result
        assert "\tUpdatedAt time.Time\n" in result
        assert "func (CreateUserRequest) TableName() string {" in result
        assert 'return "create_user_request"' in result
        assert 'return "http_rule"' in result


class TestGenerateData:
    def test_writes_files(self, tmp_path):
        target = tmp_path / "internal" / "data"
        result = generate_data([_make_service()], RenderOptions(target_dir=str(target)))

        assert sorted(os.path.basename(p) for p in result.generated) == ["model.go", "userservice_repo.go"]
        assert (target / "userservice_repo.go").read_text().startswith("package data\n")

    def test_existing_files_are_kept(self, tmp_path):
        target = tmp_path / "data"
        target.mkdir()
        (target / "model.go").write_text("package data\n")

        result = generate_data([_make_service()], RenderOptions(target_dir=str(target)))

        assert [os.path.basename(p) for p in result.skipped] == ["model.go"]
        assert [os.path.basename(p) for p in result.generated] == ["userservice_repo.go"]
        assert (target / "model.go").read_text() == "package data\n"

    def test_one_repo_per_service(self, tmp_path):
        options = RenderOptions(target_dir=str(tmp_path / "data"))
        result = generate_data([_make_service(), _make_service("OrderService")], options)
        assert sorted(os.path.basename(p) for p in result.generated) == [
            "model.go", "orderservice_repo.go", "userservice_repo.go",
        ]


class TestDuplicateMessages:
    def test_one_struct_per_name(self):
        service = _make_service()
        service.messages.append(MessageDescriptor("HTTPRule", [FieldDescriptor("verb", "string", 1)]))

        result = generate_data_models(service)

        assert result.count("type HTTPRule struct {") == 1
        assert result.count("func (HTTPRule) TableName() string {") == 1
        assert '`json:"path"`' in result
        assert '`json:"verb"`' not in result
