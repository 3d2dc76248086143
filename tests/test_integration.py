import json
import os
import shutil
import tempfile

import pytest
from google.protobuf import descriptor_pb2

from protoc_scaffold.main import main


PROTO_CONTENT = """\
syntax = "proto3";

package order.v1;

option go_package = "github.com/acme/api/order/v1;orderv1";

service OrderService {
    rpc CreateOrder(CreateOrderRequest) returns (CreateOrderReply);
    rpc ListOrders(ListOrdersRequest) returns (stream ListOrdersReply);
}

message CreateOrderRequest {
    string customer_name = 1;
    repeated OrderItem items = 2;

    message OrderItem {
        int32 item_id = 1;
        double price = 2;
    }
}

message CreateOrderReply {
    int64 order_id = 1;
}
"""


class TestCli:
    def setup_method(self):
        self.tmpdir = tempfile.mkdtemp()
        self.proto_path = os.path.join(self.tmpdir, "order.proto")
        with open(self.proto_path, "w") as f:
            f.write(PROTO_CONTENT)

    def teardown_method(self):
        shutil.rmtree(self.tmpdir)

    def test_biz(self, capsys):
        target = os.path.join(self.tmpdir, "internal", "biz")
        main(["biz", self.proto_path, "-t", target])

        out = capsys.readouterr().out
        assert "Parsed" in out
        assert "does not exist, creating" in out
        assert f"generated biz file: {os.path.join(target, 'orderservice.go')}" in out

        with open(os.path.join(target, "orderservice.go")) as f:
            usecase = f.read()
        assert "type OrderServiceRepo interface {" in usecase
        assert "\tCustomerName string // customer_name\n" in usecase
        assert "\tItems []*OrderItem // items\n" in usecase
        assert "(server streaming rpc)" in usecase

        with open(os.path.join(target, "model.go")) as f:
            models = f.read()
        assert "type OrderItem struct {" in models
        assert "\tPrice float64\n" in models

    def test_biz_no_logger(self, capsys):
        target = os.path.join(self.tmpdir, "biz")
        main(["biz", self.proto_path, "-t", target, "--no-use-logger"])
        with open(os.path.join(target, "orderservice.go")) as f:
            assert "kratos/v2/log" not in f.read()

    def test_data(self, capsys):
        target = os.path.join(self.tmpdir, "internal", "data")
        main([
            "data", self.proto_path,
            "-t", target,
            "-d", "github.com/acme/shop/internal/domain",
            "-c", "github.com/redis/go-redis/v9",
        ])

        out = capsys.readouterr().out
        assert "generated data file:" in out
        with open(os.path.join(target, "orderservice_repo.go")) as f:
            repo = f.read()
        assert '_ "github.com/acme/api/order/v1"' in repo
        assert '\t"github.com/acme/shop/internal/domain"\n' in repo
        assert "req *domain.CreateOrder" in repo
        assert "cache *redis.Client" in repo

        with open(os.path.join(target, "model.go")) as f:
            models = f.read()
        assert 'return "create_order_request"' in models

    def test_existing_file_reported(self, capsys):
        target = os.path.join(self.tmpdir, "data")
        os.makedirs(target)
        with open(os.path.join(target, "model.go"), "w") as f:
            f.write("package data\n")

        main(["data", self.proto_path, "-t", target])

        captured = capsys.readouterr()
        assert f"data file already exists: {os.path.join(target, 'model.go')}" in captured.err
        assert "orderservice_repo.go" in captured.out

    def test_show(self, capsys):
        main(["show", self.proto_path])

        model = json.loads(capsys.readouterr().out)
        assert len(model) == 1
        service = model[0]
        assert service["name"] == "OrderService"
        assert service["go_package"] == "github.com/acme/api/order/v1"
        assert [m["streaming_mode"] for m in service["methods"]] == ["unary", "server_streaming"]
        assert [m["name"] for m in service["messages"]] == ["CreateOrderRequest", "OrderItem", "CreateOrderReply"]
        items = service["messages"][0]["fields"][1]
        assert items == {"name": "items", "type": "[]OrderItem", "number": 2, "is_basic_type": False}

    def test_show_descriptor_set(self, capsys):
        fd = descriptor_pb2.FileDescriptorProto(name="ping.proto", package="ping")
        svc = fd.service.add()
        svc.name = "PingService"
        method = svc.method.add(name="Ping", input_type=".ping.PingRequest", output_type=".ping.PingReply")
        method.client_streaming = True
        fds = descriptor_pb2.FileDescriptorSet()
        fds.file.append(fd)
        path = os.path.join(self.tmpdir, "ping.pb")
        with open(path, "wb") as f:
            f.write(fds.SerializeToString())

        main(["show", path, "--descriptor"])

        model = json.loads(capsys.readouterr().out)
        assert model[0]["name"] == "PingService"
        assert model[0]["methods"][0]["request_type_full"] == "ping.PingRequest"
        assert model[0]["methods"][0]["streaming_mode"] == "client_streaming"


class TestCliErrors:
    def test_missing_file(self, capsys, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["biz", str(tmp_path / "missing.proto"), "-t", str(tmp_path / "biz")])
        assert exc.value.code == 1
        assert "FATAL: Cannot read" in capsys.readouterr().err
        assert not (tmp_path / "biz").exists()

    def test_no_service(self, capsys, tmp_path):
        proto = tmp_path / "types.proto"
        proto.write_text('syntax = "proto3";\nmessage Only { string name = 1; }\n')
        with pytest.raises(SystemExit) as exc:
            main(["data", str(proto), "-t", str(tmp_path / "data")])
        assert exc.value.code == 1
        assert "No service definition found" in capsys.readouterr().err

    def test_syntax_error(self, capsys, tmp_path):
        proto = tmp_path / "bad.proto"
        proto.write_text("service S {\n  rpc A(ARequest) returns (AReply)\n}\n")
        with pytest.raises(SystemExit) as exc:
            main(["show", str(proto)])
        assert exc.value.code == 1
        assert "FATAL: Line 3:" in capsys.readouterr().err

    def test_descriptor_and_protoc_are_exclusive(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["show", str(tmp_path / "x.proto"), "--descriptor", "--protoc"])
        assert exc.value.code == 2

    def test_command_required(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 2
