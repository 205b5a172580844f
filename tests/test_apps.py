import pytest

from k8sdemo.apps import (
    GROUP_NAME,
    SCHEME_GROUP_VERSION,
    XXX,
    Condition,
    GroupResource,
    GroupVersion,
    ObjectMeta,
    Scheme,
    XXXList,
    XXXPhase,
    XXXSpec,
    XXXStatus,
    add_to_scheme,
    resource,
    set_defaults_xxx,
    set_defaults_xxx_spec,
)


def test_set_defaults_fills_empty_fields():
    obj = XXX()
    set_defaults_xxx(obj)
    assert obj.metadata.generate_name == "hello-"
    assert obj.spec.display_name == "xxxdefaulter"


def test_set_defaults_keeps_existing_values():
    obj = XXX(metadata=ObjectMeta(generate_name="mine-"), spec=XXXSpec(display_name="shown"))
    set_defaults_xxx(obj)
    assert obj.metadata.generate_name == "mine-"
    assert obj.spec.display_name == "shown"


def test_set_defaults_spec_only():
    spec = XXXSpec(description="about")
    set_defaults_xxx_spec(spec)
    assert spec.display_name == "xxxdefaulter"
    assert spec.description == "about"


def test_to_dict_always_has_display_name_and_omits_description():
    data = XXX().to_dict()
    assert data["spec"] == {"displayName": ""}
    assert data["metadata"] == {}
    assert data["status"] == {}
    assert "kind" not in data


def test_round_trip():
    obj = XXX(
        api_version="apps.k8sdemo.io/v1beta1",
        kind="XXX",
        metadata=ObjectMeta(name="a", namespace="ns", labels={"k": "v"}),
        spec=XXXSpec(display_name="d", description="desc"),
        status=XXXStatus(
            phase=XXXPhase.RUNNING,
            observed_generation=3,
            conditions=[Condition(type="Ready", status="True", reason="ok")],
        ),
    )
    again = XXX.from_dict(obj.to_dict())
    assert again == obj
    assert obj.to_dict()["status"]["phase"] == "Running"


def test_unknown_phase_kept_as_string():
    obj = XXX.from_dict({"status": {"phase": "Odd"}})
    assert obj.status.phase == "Odd"
    assert XXX.from_dict({"status": {"phase": "Pending"}}).status.phase is XXXPhase.PENDING


def test_from_dict_rejects_non_object():
    with pytest.raises(TypeError):
        XXX.from_dict(["not", "an", "object"])


def test_list_to_dict_has_items():
    lst = XXXList(items=[XXX(metadata=ObjectMeta(name="one"))])
    data = lst.to_dict()
    assert data["items"] == [XXX(metadata=ObjectMeta(name="one")).to_dict()]
    assert XXXList().to_dict()["items"] == []


def test_resource_is_group_qualified():
    assert resource("xxxs") == GroupResource(group=GROUP_NAME, resource="xxxs")
    assert GroupVersion("g", "v1").with_resource("r") == GroupResource("g", "r")


def test_add_to_scheme_registers_kinds_and_defaults():
    scheme = Scheme()
    add_to_scheme(scheme)
    types = scheme.known_types
    assert types[(GROUP_NAME, "v1beta1", "XXX")] is XXX
    assert types[(GROUP_NAME, "v1beta1", "XXXList")] is XXXList

    lst = XXXList(items=[XXX(), XXX(spec=XXXSpec(display_name="x"))])
    scheme.default(lst)
    assert [i.spec.display_name for i in lst.items] == ["xxxdefaulter", "x"]
    assert all(i.metadata.generate_name == "hello-" for i in lst.items)


def test_add_to_scheme_twice_is_allowed():
    scheme = Scheme()
    add_to_scheme(scheme)
    add_to_scheme(scheme)
    assert len(scheme.known_types) == 2


def test_double_registration_of_different_types_fails():
    class XXX:  # noqa: N801 - same kind name, different class
        pass

    scheme = Scheme()
    add_to_scheme(scheme)
    with pytest.raises(ValueError):
        scheme.add_known_types(SCHEME_GROUP_VERSION, XXX)


def test_default_without_defaulter_leaves_object():
    scheme = Scheme()
    obj = XXX()
    scheme.default(obj)
    assert obj == XXX()