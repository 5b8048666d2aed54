import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from support import KEY, KEY_HEX, make_m4a, make_ogg, make_png, write_scrambled

from Modules.RPGMAssetCipher.errors import ErrorKind, IOFailureError, KeyUnresolvedError
from Modules.RPGMAssetCipher.model import AssetJob, Outcome, OutcomeStatus
from Modules.RPGMAssetCipher.operations import decrypt, encrypt
from Modules.RPGMAssetCipher.processor import enumerate_files, plan_jobs
from Modules.RPGMAssetCipher.registry import AssetKind, Direction, EngineVariant


class PlanTests(unittest.TestCase):
    def test_plan_classifies_and_skips(self) -> None:
        root = Path("/game/www")
        files = [root / "img" / "a.rpgmvp", root / "audio" / "b.ogg", root / "readme.txt"]
        plan = plan_jobs(files, root, Direction.DECRYPT, output_dir=Path("/out"))
        self.assertIsInstance(plan[0], AssetJob)
        self.assertEqual(plan[0].target, Path("/out/img/a.png"))
        self.assertEqual(plan[0].kind, AssetKind.IMAGE)
        self.assertIsInstance(plan[1], Outcome)
        self.assertEqual(plan[1].reason, "already restored")
        self.assertEqual(plan[2].status, OutcomeStatus.SKIPPED)
        self.assertIsNone(plan[2].kind)

    def test_plan_encrypt_mz(self) -> None:
        root = Path("/game")
        plan = plan_jobs([root / "se.ogg", root / "bgm.rpgmvo"], root, Direction.ENCRYPT, EngineVariant.MZ)
        self.assertEqual(plan[0].target, root / "se.ogg_")
        self.assertEqual(plan[1].reason, "already scrambled (mv)")


class BatchTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.tmpdir = TemporaryDirectory()
        self.tmp_path = Path(self.tmpdir.name)
        self.game = self.tmp_path / "game"
        self.game.mkdir()

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def _statuses(self, report) -> dict:
        return {outcome.source.name: outcome for outcome in report.outcomes}

    async def test_auto_key_shared_by_mixed_kinds(self) -> None:
        write_scrambled(self.game / "a.rpgmvo", make_ogg())
        write_scrambled(self.game / "b.rpgmvp", make_png())
        report = await decrypt(self.game, show_progress=False)
        self.assertEqual(report.key, KEY_HEX)
        self.assertEqual(report.written, 2)
        self.assertTrue(report.ok)
        self.assertEqual((self.game / "a.ogg").read_bytes(), make_ogg())
        self.assertEqual((self.game / "b.png").read_bytes(), make_png())

    async def test_unrelated_files_are_skipped(self) -> None:
        write_scrambled(self.game / "img" / "a.rpgmvp", make_png())
        (self.game / "notes.txt").write_text("hello", encoding="utf-8")
        report = await decrypt(self.game, show_progress=False)
        outcomes = self._statuses(report)
        self.assertEqual(outcomes["notes.txt"].status, OutcomeStatus.SKIPPED)
        self.assertEqual(outcomes["a.rpgmvp"].status, OutcomeStatus.WRITTEN)
        self.assertEqual(report.failed, 0)
        self.assertEqual((self.game / "notes.txt").read_text(encoding="utf-8"), "hello")

    async def test_restore_twice_skips(self) -> None:
        write_scrambled(self.game / "a.rpgmvp", make_png())
        out = self.tmp_path / "out"
        await decrypt(self.game, output_dir=out, show_progress=False)
        restored = (out / "a.png").read_bytes()
        for _ in range(2):
            report = await decrypt(out, show_progress=False)
            self.assertEqual(report.skipped, 1)
            self.assertEqual(report.written, 0)
            self.assertEqual(report.outcomes[0].reason, "already restored")
            self.assertEqual((out / "a.png").read_bytes(), restored)

    async def test_restore_scramble_restore(self) -> None:
        original = write_scrambled(self.game / "sub" / "a.rpgmvp", make_png(b"\x07" * 64))
        write_scrambled(self.game / "b.rpgmvm", make_m4a())
        first, second, third = (self.tmp_path / name for name in ("first", "second", "third"))
        report = await decrypt(self.game, output_dir=first, show_progress=False)
        await encrypt(first, report.key, EngineVariant.MV, output_dir=second, show_progress=False)
        self.assertEqual((second / "sub" / "a.rpgmvp").read_bytes(), original)
        await decrypt(second, output_dir=third, show_progress=False)
        for name in ("sub/a.png", "b.m4a"):
            self.assertEqual((third / name).read_bytes(), (first / name).read_bytes())

    async def test_encrypt_mz_then_decrypt(self) -> None:
        (self.game / "Actor1.png").write_bytes(make_png())
        report = await encrypt(self.game, KEY_HEX, "mz", show_progress=False)
        self.assertEqual(report.written, 1)
        self.assertTrue((self.game / "Actor1.png_").exists())
        (self.game / "Actor1.png").unlink()
        report = await decrypt(self.game / "Actor1.png_", single_file=True, show_progress=False)
        self.assertEqual(report.written, 1)
        self.assertEqual((self.game / "Actor1.png").read_bytes(), make_png())

    async def test_encrypt_requires_key(self) -> None:
        (self.game / "Actor1.png").write_bytes(make_png())
        with self.assertRaises(KeyUnresolvedError):
            await encrypt(self.game, None, EngineVariant.MV, show_progress=False)
        self.assertEqual(sorted(p.name for p in self.game.iterdir()), ["Actor1.png"])

    async def test_no_recoverable_key(self) -> None:
        (self.game / "tiny.rpgmvp").write_bytes(b"\x00" * 20)
        with self.assertRaises(KeyUnresolvedError):
            await decrypt(self.game, show_progress=False)

    async def test_key_recovery_moves_past_bad_file(self) -> None:
        (self.game / "a.rpgmvp").write_bytes(b"\x00" * 31)
        write_scrambled(self.game / "b.rpgmvp", make_png())
        report = await decrypt(self.game, show_progress=False)
        outcomes = self._statuses(report)
        self.assertEqual(report.key, KEY_HEX)
        self.assertEqual(outcomes["a.rpgmvp"].status, OutcomeStatus.FAILED)
        self.assertEqual(outcomes["a.rpgmvp"].error, ErrorKind.TOO_SHORT)
        self.assertEqual(outcomes["b.rpgmvp"].status, OutcomeStatus.WRITTEN)
        self.assertFalse((self.game / "a.png").exists())

    async def test_partial_key_from_ogg_only(self) -> None:
        write_scrambled(self.game / "bgm.rpgmvo", make_ogg())
        report = await decrypt(self.game, show_progress=False)
        self.assertEqual(report.key, KEY_HEX[:28] + "0000")
        self.assertEqual(report.written, 1)
        self.assertEqual((self.game / "bgm.ogg").read_bytes()[:14], make_ogg()[:14])

    async def test_wrong_key_is_prefix_mismatch(self) -> None:
        write_scrambled(self.game / "a.rpgmvp", make_png())
        write_scrambled(self.game / "b.rpgmvo", make_ogg())
        report = await decrypt(self.game, key="ff" * 16, show_progress=False)
        self.assertEqual(report.failed, 2)
        self.assertFalse(report.aborted)
        self.assertTrue(all(o.error == ErrorKind.PREFIX_MISMATCH for o in report.outcomes))
        self.assertFalse((self.game / "a.png").exists())

    async def test_strict_mode_aborts(self) -> None:
        write_scrambled(self.game / "a.rpgmvp", make_png())
        write_scrambled(self.game / "b.rpgmvp", make_png())
        report = await decrypt(self.game, key="ff" * 16, strict=True, show_progress=False)
        self.assertTrue(report.aborted)
        self.assertFalse(report.ok)
        self.assertEqual([o.source.name for o in report.outcomes], ["a.rpgmvp"])
        self.assertFalse((self.game / "b.png").exists())

    async def test_write_failure_is_io_failure(self) -> None:
        write_scrambled(self.game / "a.rpgmvp", make_png())
        blocker = self.tmp_path / "blocker"
        blocker.write_bytes(b"")
        report = await decrypt(self.game, output_dir=blocker, show_progress=False)
        self.assertEqual(report.outcomes[0].error, ErrorKind.IO_FAILURE)

    async def test_no_partial_files_left(self) -> None:
        for index in range(20):
            write_scrambled(self.game / f"{index:02}.rpgmvp", make_png(bytes([index]) * 100))
        report = await decrypt(self.game, concurrency=4, show_progress=False)
        self.assertEqual(report.written, 20)
        self.assertEqual(list(self.game.rglob("*.partial")), [])
        self.assertEqual([o.source.name for o in report.outcomes], [f"{i:02}.rpgmvp" for i in range(20)])

    async def test_nothing_to_do(self) -> None:
        (self.game / "Actor1.png").write_bytes(make_png())
        report = await decrypt(self.game, show_progress=False)
        self.assertIsNone(report.key)
        self.assertEqual(report.skipped, 1)

    async def test_missing_input(self) -> None:
        with self.assertRaises(IOFailureError):
            await decrypt(self.tmp_path / "missing", show_progress=False)
        with self.assertRaises(IOFailureError):
            enumerate_files(self.game, single_file=True)

    async def test_mv_and_mz_names_collide(self) -> None:
        write_scrambled(self.game / "a.rpgmvp", make_png(b"\x01" * 20))
        write_scrambled(self.game / "a.png_", make_png(b"\x02" * 20))
        report = await decrypt(self.game, show_progress=False)
        outcomes = self._statuses(report)
        self.assertEqual(outcomes["a.png_"].status, OutcomeStatus.WRITTEN)
        self.assertEqual(outcomes["a.rpgmvp"].status, OutcomeStatus.FAILED)
        self.assertEqual(outcomes["a.rpgmvp"].error, ErrorKind.IO_FAILURE)
        self.assertIn("a.png_", outcomes["a.rpgmvp"].reason)
        self.assertEqual((self.game / "a.png").read_bytes(), make_png(b"\x02" * 20))

    async def test_collision_aborts_strict_batch(self) -> None:
        write_scrambled(self.game / "a.rpgmvp", make_png())
        write_scrambled(self.game / "a.png_", make_png())
        report = await decrypt(self.game, strict=True, show_progress=False)
        self.assertTrue(report.aborted)
        self.assertEqual([o.status for o in report.outcomes], [OutcomeStatus.FAILED])
        self.assertFalse((self.game / "a.png").exists())

    async def test_missing_signature_is_logged(self) -> None:
        data = bytearray(write_scrambled(self.game / "a.rpgmvp", make_png()))
        data[:5] = b"XXXXX"
        (self.game / "a.rpgmvp").write_bytes(data)
        with self.assertLogs("Modules.RPGMAssetCipher.processor", level="WARNING") as logs:
            report = await decrypt(self.game, key=KEY_HEX, show_progress=False)
        self.assertEqual(report.written, 1)
        self.assertTrue(any("RPGMV signature" in line for line in logs.output))

    async def test_report_summary(self) -> None:
        write_scrambled(self.game / "a.rpgmvp", make_png())
        summary = (await decrypt(self.game, show_progress=False)).summary()
        self.assertEqual(summary["direction"], "decrypt")
        self.assertEqual(summary["written"], 1)
        self.assertEqual(summary["outcomes"][0]["status"], "written")
        self.assertTrue(summary["ok"])


if __name__ == "__main__":
    unittest.main()
