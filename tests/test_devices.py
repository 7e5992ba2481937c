from sitecapture.devices import CUSTOM_DEVICES, DeviceTable, EmulationMode, profile_from_descriptor
from sitecapture.schemas import DeviceSpec

PIXEL_7 = {
    "user_agent": "Mozilla/5.0 (Linux; Android 14; Pixel 7) Mobile Safari/537.36",
    "viewport": {"width": 412, "height": 839},
    "screen": {"width": 412, "height": 915},
    "device_scale_factor": 2.625,
    "is_mobile": True,
    "has_touch": True,
    "default_browser_type": "chromium",
}


def test_custom_override_wins_over_builtin_profile():
    builtin = {"iPhone 13": {**PIXEL_7, "user_agent": "builtin agent"}}
    table = DeviceTable(builtin=builtin)

    profile = table.lookup("iPhone 13")

    assert profile == CUSTOM_DEVICES["iPhone 13"]
    assert profile.user_agent != "builtin agent"
    assert (profile.width, profile.height, profile.device_scale_factor) == (390, 844, 3)


def test_builtin_descriptor_is_converted():
    table = DeviceTable(builtin={"Pixel 7": PIXEL_7})

    profile = table.lookup("Pixel 7")

    assert profile.name == "Pixel 7"
    assert profile.user_agent == PIXEL_7["user_agent"]
    assert (profile.width, profile.height) == (412, 839)
    assert profile.device_scale_factor == 2.625
    assert profile.is_mobile and profile.has_touch


def test_unknown_device_is_absent():
    table = DeviceTable(builtin={})

    assert table.lookup("Nokia 3310") is None
    assert "Nokia 3310" not in table
    assert "Desktop" in table


def test_plan_falls_back_to_viewport_when_dimensions_given():
    table = DeviceTable(builtin={})

    plan = table.plan(DeviceSpec(name="Laptop 1366", width=1366, height=768))

    assert plan.mode is EmulationMode.VIEWPORT
    assert plan.profile is None
    assert plan.viewport == (1366, 768)


def test_plan_skips_emulation_without_profile_or_dimensions():
    table = DeviceTable(builtin={})

    plan = table.plan(DeviceSpec(name="Mystery", width=1024))

    assert plan.mode is EmulationMode.DEFAULT
    assert plan.viewport is None


def test_plan_prefers_profile_over_explicit_dimensions():
    table = DeviceTable(builtin={})

    plan = table.plan(DeviceSpec(name="Desktop", width=800, height=600))

    assert plan.mode is EmulationMode.PROFILE
    assert plan.viewport == (1920, 1080)


def test_table_is_isolated_from_source_mappings():
    builtin = {"Pixel 7": PIXEL_7}
    table = DeviceTable(builtin=builtin)

    builtin.clear()

    assert table.lookup("Pixel 7") is not None


def test_descriptor_without_viewport_defaults_to_zero_size():
    profile = profile_from_descriptor("Odd", {"user_agent": "ua"})

    assert (profile.width, profile.height) == (0, 0)
    assert profile.device_scale_factor == 1
