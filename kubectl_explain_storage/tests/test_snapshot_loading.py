import json

import pytest

from kubectl_explain_storage.context import build_snapshot, collection_paths
from kubectl_explain_storage.errors import CollectionError
from kubectl_explain_storage.model import load_collection, normalize_items
from kubectl_explain_storage.snapshot import ClusterSnapshot


def make_args(**values):
    fields = {
        "snapshot": None,
        "nodes": None,
        "volumes": None,
        "replicas": None,
        "pvs": None,
        "pods": None,
    }
    fields.update(values)
    return type("Args", (), fields)()


class TestNormalizeItems:
    def test_kubernetes_list(self):
        doc = {"kind": "VolumeList", "items": [{"metadata": {"name": "v1"}}, "x"]}
        assert normalize_items(doc) == [{"metadata": {"name": "v1"}}]

    def test_bare_list_and_single_object(self):
        obj = {"metadata": {"name": "v1"}}
        assert normalize_items([obj, 3]) == [obj]
        assert normalize_items(obj) == [obj]

    def test_empty_documents(self):
        assert normalize_items(None) == []
        assert normalize_items({"kind": "List", "items": None}) == []
        assert normalize_items({"kind": 7, "items": []}) == []


class TestLoadCollection:
    def test_json_and_yaml(self, tmp_path):
        json_file = tmp_path / "volumes.json"
        json_file.write_text(json.dumps({"items": [{"metadata": {"name": "v1"}}]}))
        yaml_file = tmp_path / "nodes.yaml"
        yaml_file.write_text("kind: List\nitems:\n  - metadata:\n      name: n1\n")

        assert load_collection("volumes", str(json_file))[0]["metadata"]["name"] == "v1"
        assert load_collection("nodes", str(yaml_file))[0]["metadata"]["name"] == "n1"

    def test_missing_file(self, tmp_path):
        with pytest.raises(CollectionError) as exc:
            load_collection("pvs", str(tmp_path / "absent.json"))

        assert exc.value.collection == "pvs"
        assert "failed to load pvs" in str(exc.value)

    @pytest.mark.parametrize(
        "name,content",
        [
            ("broken.json", b"{not json"),
            ("broken.yaml", b"items: [unclosed"),
            ("scalar.json", b"42"),
            ("latin1.json", b"{\"items\": [\"\xff\xfe\"]}"),
            ("latin1.yaml", b"items:\n  - \xff\xfe\n"),
        ],
    )
    def test_malformed_documents(self, tmp_path, name, content):
        path = tmp_path / name
        path.write_bytes(content)
        with pytest.raises(CollectionError):
            load_collection("volumes", str(path))


class TestBuildSnapshot:
    def test_explicit_path_wins_over_directory(self, tmp_path):
        (tmp_path / "volumes.json").write_text("[]")
        explicit = tmp_path / "other-volumes.yaml"
        explicit.write_text("[]")

        paths = collection_paths(
            make_args(snapshot=str(tmp_path), volumes=str(explicit))
        )

        assert paths["volumes"] == str(explicit)
        assert paths["nodes"] is None

    def test_failures_are_recorded_per_collection(self, tmp_path):
        nodes = {"items": [{"metadata": {"name": "n1"}}]}
        (tmp_path / "nodes.json").write_text(json.dumps(nodes))
        (tmp_path / "volumes.json").write_text("{broken")

        snapshot = build_snapshot(make_args(snapshot=str(tmp_path)))

        assert len(snapshot.nodes) == 1
        assert snapshot.volumes == []
        assert "malformed document" in snapshot.errors["volumes"]
        assert snapshot.errors["pods"] == "no input file given"
        assert "nodes" not in snapshot.errors
        assert snapshot.available("nodes")
        assert not snapshot.available("nodes", "volumes")

    def test_undecodable_file_only_fails_its_collection(self, tmp_path):
        (tmp_path / "nodes.json").write_bytes(b"\xff\xfe{}")
        (tmp_path / "volumes.json").write_text(
            json.dumps({"items": [{"metadata": {"name": "pvc-1"}}]})
        )

        snapshot = build_snapshot(make_args(snapshot=str(tmp_path)))

        assert snapshot.nodes == []
        assert "malformed document" in snapshot.errors["nodes"]
        assert len(snapshot.volumes) == 1
        assert "volumes" not in snapshot.errors


def test_snapshot_defaults():
    snapshot = ClusterSnapshot()
    snapshot.record_error("pods", "forbidden")

    assert snapshot.nodes == [] and snapshot.pods == []
    assert snapshot.errors == {"pods": "forbidden"}
