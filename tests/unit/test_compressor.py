from unittest.mock import AsyncMock, MagicMock

import pytest

from app_explorer.compressor import ElementCompressor, StructuralPriority, compress, structural_priority
from app_explorer.config import CompressorConfig
from app_explorer.elements import Element, ElementType, Frame, RawNode, ScreenCategory, SemanticIntent
from tests.mocks.screen_mocks import home_screen, login_screen, node, window


class TestCompress:
    """Raw tree -> compressed hierarchy."""

    def test_login_screen_is_detected_and_ordered(self) -> None:
        hierarchy = compress(login_screen())

        assert hierarchy.screen_category == ScreenCategory.LOGIN
        assert hierarchy.elements[0].id == "loginButton"
        assert hierarchy.elements[0].intent == SemanticIntent.SUBMIT
        assert {e.id for e in hierarchy.elements[1:3]} == {"emailField", "passwordField"}
        assert hierarchy.elements[-1].label == "Welcome back"

    def test_truncates_to_fifty_keeping_highest_priority(self) -> None:
        buttons = [node("button", f"item{i}", f"Item {i}") for i in range(60)]
        tree = window(*buttons, node("textField", "nameField", "Name"))

        hierarchy = compress(tree)

        assert len(hierarchy.elements) == 50
        assert hierarchy.elements[0].id == "nameField"
        priorities = [e.priority for e in hierarchy.elements]
        assert priorities == sorted(priorities, reverse=True)

    def test_structural_priority_breaks_semantic_ties(self) -> None:
        tree = window(node("button", "plain"), node("button", "full", "Full"))

        hierarchy = compress(tree)

        assert [e.id for e in hierarchy.elements] == ["full", "plain"]

    def test_max_elements_is_configurable(self) -> None:
        tree = window(*[node("button", f"b{i}", f"B {i}") for i in range(10)])

        hierarchy = compress(tree, CompressorConfig(max_elements=3))

        assert len(hierarchy.elements) == 3
        assert len(hierarchy.element_contexts) == 3

    def test_keyboard_keys_are_excluded_only_when_keyboard_is_shown(self) -> None:
        children = [
            node("textField", "noteField", "Note"),
            node("button", "keyboardKey", "Q"),
            node("button", label="return"),
            node("button", "saveButton", "Save"),
        ]

        with_keyboard = compress(window(*children, keyboard_present=True))
        without_keyboard = compress(window(*children, keyboard_present=False))

        assert {e.display_name for e in with_keyboard.elements} == {"noteField", "saveButton"}
        assert len(without_keyboard.elements) == 4

    def test_system_chrome_subtree_is_skipped(self) -> None:
        tree = window(
            node("statusBar", children=[node("button", "clock", "9:41")]),
            node("button", "okButton", "OK"),
        )

        hierarchy = compress(tree)

        assert [e.id for e in hierarchy.elements] == ["okButton"]

    def test_duplicates_keep_first_occurrence(self) -> None:
        tree = window(node("button", "again", "Again"), node("button", "again", "Again"))

        assert len(compress(tree).elements) == 1

    def test_non_finite_frames_are_skipped(self) -> None:
        broken = RawNode("button", "ghost", "Ghost", frame=Frame(x=float("nan")))
        tree = window(broken, node("button", "real", "Real"))

        assert [e.id for e in compress(tree).elements] == ["real"]

    def test_values_only_for_interactive_elements(self) -> None:
        tree = window(
            node("switch", "wifiToggle", "Wi-Fi", value=True),
            node("staticText", "caption", "Caption", value="ignored"),
        )

        by_id = {e.id: e for e in compress(tree).elements}

        assert by_id["wifiToggle"].value == "1"
        assert by_id["caption"].value is None

    def test_content_category_is_normalised_to_none(self) -> None:
        tree = window(node("staticText", label="Terms"), node("button", "acceptButton", "Accept"))

        assert compress(tree).screen_category is None

    def test_semantic_analysis_can_be_disabled(self) -> None:
        hierarchy = compress(login_screen(), CompressorConfig(use_semantic_analysis=False))

        assert hierarchy.screen_category is None
        assert all(e.priority is None and e.intent is None for e in hierarchy.elements)
        # structural order only: interactive elements with id + label first
        assert hierarchy.elements[-1].type == ElementType.TEXT

    def test_element_context_queries(self) -> None:
        hierarchy = compress(login_screen())
        button = hierarchy.find("loginButton")

        context = hierarchy.element_contexts[button.key]

        assert context.queries.primary == 'button[id="loginButton"]'
        assert context.queries.alternatives[0] == 'button[label="Log In"]'
        assert context.traits == ("button",)
        assert context.is_enabled is True


class TestStructuralPriority:
    @pytest.mark.parametrize(
        "element, expected",
        [
            (Element(ElementType.BUTTON, "a", "A", interactive=True), StructuralPriority.CRITICAL),
            (Element(ElementType.BUTTON, "a", None, interactive=True), StructuralPriority.HIGH),
            (Element(ElementType.BUTTON, None, None, interactive=True), StructuralPriority.MEDIUM),
            (Element(ElementType.TEXT, "a", None), StructuralPriority.MEDIUM),
            (Element(ElementType.TEXT, None, "Hello"), StructuralPriority.LOW),
        ],
    )
    def test_bands(self, element: Element, expected: StructuralPriority) -> None:
        assert structural_priority(element) == expected


class TestCapture:
    @pytest.mark.asyncio
    async def test_capture_compresses_snapshot(self) -> None:
        driver = MagicMock()
        driver.is_app_alive = AsyncMock(return_value=True)
        driver.capture_raw_tree = AsyncMock(return_value=home_screen())
        driver.take_screenshot = AsyncMock(return_value=b"png")

        hierarchy = await ElementCompressor().capture(driver)

        assert hierarchy.screenshot == b"png"
        assert hierarchy.screen_category == ScreenCategory.SETTINGS
        driver.capture_raw_tree.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_dead_app_gives_empty_hierarchy(self) -> None:
        driver = MagicMock()
        driver.is_app_alive = AsyncMock(return_value=False)
        driver.capture_raw_tree = AsyncMock()

        hierarchy = await ElementCompressor().capture(driver)

        assert hierarchy.is_empty
        driver.capture_raw_tree.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_snapshot_failure_gives_empty_hierarchy(self) -> None:
        driver = MagicMock()
        driver.is_app_alive = AsyncMock(return_value=True)
        driver.capture_raw_tree = AsyncMock(side_effect=RuntimeError("no tree"))

        hierarchy = await ElementCompressor().capture(driver)

        assert hierarchy.is_empty
        assert hierarchy.screenshot == b""

    @pytest.mark.asyncio
    async def test_screenshot_failure_does_not_fail_capture(self) -> None:
        driver = MagicMock()
        driver.is_app_alive = AsyncMock(return_value=True)
        driver.capture_raw_tree = AsyncMock(return_value=login_screen())
        driver.take_screenshot = AsyncMock(side_effect=RuntimeError("no pixels"))

        hierarchy = await ElementCompressor().capture(driver)

        assert not hierarchy.is_empty
        assert hierarchy.screenshot == b""
