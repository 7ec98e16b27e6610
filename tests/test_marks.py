import threading
import unittest

from markguide.marks import (
    DEFAULT_LABEL,
    LabelConflictError,
    Mark,
    MarkStore,
    mark_from_rect,
    parse_region_settings,
    parse_script,
)


def _mark(label: str, x: float = 0.0, z: float = 0.0) -> Mark:
    return Mark(label=label, position=(x, 1.0, z), scale=(2.0, 2.0, 2.0))


class TestMark(unittest.TestCase):
    def test_negative_margin_is_clamped(self) -> None:
        mark = Mark(label="A", position=(0, 1, 0), scale=(2, 2, 2), margin=-3)
        self.assertEqual(mark.margin, 0.0)

    def test_vectors_are_float_tuples(self) -> None:
        mark = Mark(label="A", position=[1, 2, 3], scale=[4, 5, 6])
        self.assertEqual(mark.position, (1.0, 2.0, 3.0))
        self.assertEqual(mark.scale, (4.0, 5.0, 6.0))


class TestMarkStore(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MarkStore()

    def test_save_overwrites_in_place(self) -> None:
        self.store.save(_mark("A"))
        self.store.save(_mark("B"))
        self.store.save(_mark("A", x=5.0))
        self.assertEqual(self.store.labels(), ["A", "B"])
        self.assertEqual(self.store.get("A").position[0], 5.0)

    def test_save_ignores_empty_label_and_none(self) -> None:
        self.store.save(None)
        self.store.save(_mark(""))
        self.assertEqual(len(self.store), 0)

    def test_remove_unknown_is_noop(self) -> None:
        self.store.save(_mark("A"))
        self.store.remove("missing")
        self.store.remove("")
        self.assertIn("A", self.store)

    def test_rename_moves_record(self) -> None:
        self.store.save(_mark("A"))
        renamed = self.store.rename("A", "Cafe")
        self.assertEqual(renamed.label, "Cafe")
        self.assertNotIn("A", self.store)
        self.assertEqual(self.store.get("Cafe"), renamed)

    def test_rename_conflict_leaves_store_unchanged(self) -> None:
        a = _mark("A", x=1.0)
        b = _mark("B", x=2.0)
        self.store.save(a)
        self.store.save(b)
        with self.assertRaises(LabelConflictError) as ctx:
            self.store.rename("A", "B")
        self.assertEqual(ctx.exception.label, "B")
        self.assertIs(self.store.get("A"), a)
        self.assertIs(self.store.get("B"), b)
        self.assertEqual(self.store.labels(), ["A", "B"])

    def test_rename_to_same_label_is_noop(self) -> None:
        a = _mark("A")
        self.store.save(a)
        self.assertIs(self.store.rename("A", "A"), a)

    def test_rename_unknown_raises_key_error(self) -> None:
        with self.assertRaises(KeyError):
            self.store.rename("nope", "B")

    def test_update_replaces_fields(self) -> None:
        self.store.save(_mark("A"))
        updated = self.store.update("A", keyword="coffee", margin=2.5)
        self.assertEqual(updated.keyword, "coffee")
        self.assertEqual(self.store.get("A").margin, 2.5)
        with self.assertRaises(ValueError):
            self.store.update("A", label="B")

    def test_snapshot_is_detached(self) -> None:
        self.store.save(_mark("A"))
        snap = self.store.snapshot()
        self.store.save(_mark("B"))
        self.store.clear()
        self.assertEqual([m.label for m in snap], ["A"])
        self.assertEqual(len(self.store), 0)

    def test_concurrent_writers(self) -> None:
        def _writer(prefix: str) -> None:
            for i in range(200):
                self.store.save(_mark(f"{prefix}{i}"))

        threads = [threading.Thread(target=_writer, args=(p,)) for p in "abcd"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(self.store.snapshot()), 800)


class TestMarkFromRect(unittest.TestCase):
    def test_corners_in_any_order(self) -> None:
        mark = mark_from_rect("Gate", (4.0, 2.0), (0.0, 0.0), height=3.0)
        self.assertEqual(mark.scale, (4.0, 3.0, 2.0))
        self.assertEqual(mark.position, (2.0, 1.5, 1.0))
        self.assertEqual(mark.margin, 2.0)
        self.assertEqual((mark.angle1, mark.angle2), (-30.0, 30.0))

    def test_small_rect_uses_minimum_margin_and_height(self) -> None:
        mark = mark_from_rect("  ", (0.0, 0.0), (0.4, 0.2), ground_y=1.0, min_height=0.1)
        self.assertEqual(mark.label, DEFAULT_LABEL)
        self.assertEqual(mark.margin, 0.5)
        self.assertAlmostEqual(mark.scale[1], 0.1)
        self.assertAlmostEqual(mark.position[1], 1.05)


class TestParsing(unittest.TestCase):
    def test_valid_values(self) -> None:
        self.assertEqual(parse_region_settings("2.5", "-45", 60), (2.5, -45.0, 60.0))

    def test_fallbacks(self) -> None:
        self.assertEqual(parse_region_settings("abc", None, ""), (1.0, -30.0, 30.0))
        self.assertEqual(parse_region_settings("nan", "inf", "x"), (1.0, -30.0, 30.0))

    def test_negative_margin_clamped(self) -> None:
        self.assertEqual(parse_region_settings("-2", "0", "10")[0], 0.0)

    def test_script_trimmed(self) -> None:
        self.assertEqual(parse_script("  coffee ", None), ("coffee", ""))


if __name__ == "__main__":
    unittest.main()
