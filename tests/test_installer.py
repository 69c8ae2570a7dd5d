"""Installer: install / uninstall / upgrade / install_from_file / list / verify."""

import asyncio
import json

import pytest

from conftest import ANALYTICS, ANALYTICS_071, ANALYTICS_072, JAVA_GROUP, FakeTransport

from plumb.context import RunContext
from plumb.exceptions import FetchError, IntegrityError, PluginNotFoundError, ResolutionError
from plumb.plugins import ChecksumStore, IdentifierRegistry, Installer
from plumb.plugins.storage import sha1_hexdigest
from plumb.types import ArtifactCoordinate, PluginLanguage, VerificationStatus

COORD_071 = ANALYTICS.with_version("0.7.1")
COORD_072 = ANALYTICS.with_version("0.7.2")
ACME_FAT = ArtifactCoordinate(group_id="com.acme", artifact_id="acme-plugin", classifier="jar-with-deps")


def _version_dir(bundles_dir, version="0.7.1", name="analytics-plugin", language="java"):
    return bundles_dir / "plugins" / language / name / version


def _marker(bundles_dir, version="0.7.1"):
    return _version_dir(bundles_dir, version) / "tmp" / "disabled.txt"


def _artifact(bundles_dir, version="0.7.1"):
    return _version_dir(bundles_dir, version) / f"analytics-plugin-{version}.jar"


@pytest.fixture
def acme_installer(run_context):
    """Installer over a repository that only publishes classified acme-plugin jars."""
    transport = FakeTransport(
        artifacts={
            str(ACME_FAT.with_version("1.0")): b"acme 1.0 fat",
            str(ACME_FAT.with_version("1.1")): b"acme 1.1 fat",
        },
        versions={str(ACME_FAT): ["1.0", "1.1"]},
    )
    return Installer(run_context, transport)


async def _install_acme(installer, version="1.0"):
    return await installer.install(
        "acme", group_id="com.acme", artifact_id="acme-plugin", classifier="jar-with-deps", version=version,
    )


# ─── install ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
class TestInstall:
    async def test_install_writes_artifact_checksum_and_registry(self, installer, run_context, bundles_dir):
        result = await installer.install("analytics", version="0.7.1")

        assert result.key == "analytics"
        assert result.plugin_name == "analytics-plugin"
        assert result.version == "0.7.1"
        assert result.language == "java"
        assert result.coordinate == str(COORD_071)
        assert result.downloaded is True
        assert result.checksum == sha1_hexdigest(ANALYTICS_071)
        assert result.size == len(ANALYTICS_071)

        assert _artifact(bundles_dir).read_bytes() == ANALYTICS_071
        assert not _marker(bundles_dir).exists()
        assert ChecksumStore(run_context.checksum_file).lookup(COORD_071) == sha1_hexdigest(ANALYTICS_071)

        entry = IdentifierRegistry(run_context.identifiers_file).get("analytics")
        assert entry.plugin_name == "analytics-plugin"
        assert entry.group_id == "org.kill-bill.billing.plugin.java"
        assert entry.packaging == "jar"
        assert entry.version == "0.7.1"
        assert entry.language == "java"

    async def test_install_latest(self, installer, transport, bundles_dir):
        result = await installer.install("analytics")
        assert result.version == "0.7.2"
        assert transport.fetch_calls == [str(COORD_072)]
        assert _artifact(bundles_dir, "0.7.2").read_bytes() == ANALYTICS_072

    async def test_unknown_key_touches_nothing(self, installer, transport, bundles_dir):
        with pytest.raises(ResolutionError):
            await installer.install("does-not-exist", version="LATEST")
        assert transport.calls == 0
        assert not bundles_dir.exists()

    async def test_reinstall_skips_fetch_when_verified(self, installer, transport):
        await installer.install("analytics", version="0.7.1")
        result = await installer.install("analytics", version="0.7.1")
        assert result.downloaded is False
        assert transport.fetch_calls == [str(COORD_071)]

    async def test_force_fetches_again(self, installer, transport):
        await installer.install("analytics", version="0.7.1")
        result = await installer.install("analytics", version="0.7.1", force=True)
        assert result.downloaded is True
        assert transport.fetch_calls == [str(COORD_071), str(COORD_071)]

    async def test_tampered_file_is_fetched_again(self, installer, transport, bundles_dir):
        await installer.install("analytics", version="0.7.1")
        _artifact(bundles_dir).write_bytes(b"tampered")
        result = await installer.install("analytics", version="0.7.1")
        assert result.downloaded is True
        assert _artifact(bundles_dir).read_bytes() == ANALYTICS_071

    async def test_stored_checksum_mismatch_raises(self, installer, run_context, bundles_dir):
        ChecksumStore(run_context.checksum_file).upsert(COORD_071, "0" * 40)
        with pytest.raises(IntegrityError) as exc_info:
            await installer.install("analytics", version="0.7.1")
        assert exc_info.value.expected == "0" * 40
        assert not _artifact(bundles_dir).exists()
        assert len(IdentifierRegistry(run_context.identifiers_file)) == 0

    async def test_published_checksum_mismatch_raises(self, run_context, bundles_dir):
        transport = FakeTransport(
            artifacts={str(COORD_071): ANALYTICS_071},
            published={str(COORD_071): "f" * 40},
        )
        with pytest.raises(IntegrityError):
            await Installer(run_context, transport).install("analytics", version="0.7.1")
        assert not _artifact(bundles_dir).exists()
        assert ChecksumStore(run_context.checksum_file).lookup(COORD_071) is None

    async def test_published_checksum_check_can_be_disabled(self, settings, bundles_dir):
        transport = FakeTransport(
            artifacts={str(COORD_071): ANALYTICS_071},
            published={str(COORD_071): "f" * 40},
        )
        settings = settings.model_copy(update={"verify_remote_checksum": False})
        with RunContext(settings) as ctx:
            await Installer(ctx, transport).install("analytics", version="0.7.1")
        assert transport.checksum_calls == []
        assert _artifact(bundles_dir).is_file()

    async def test_fetch_error_propagates(self, installer, run_context):
        with pytest.raises(FetchError):
            await installer.install("analytics", version="9.9.9")
        assert len(IdentifierRegistry(run_context.identifiers_file)) == 0

    async def test_explicit_coordinates(self, run_context, bundles_dir):
        from plumb.types import ArtifactCoordinate
        coord = ArtifactCoordinate(group_id="com.acme", artifact_id="acme-plugin", version="1.2.0")
        transport = FakeTransport(artifacts={str(coord): b"acme"})
        result = await Installer(run_context, transport).install(
            "acme", group_id="com.acme", artifact_id="acme-plugin", version="1.2.0",
        )
        assert result.plugin_name == "acme-plugin"
        assert (bundles_dir / "plugins" / "java" / "acme-plugin" / "1.2.0" / "acme-plugin-1.2.0.jar").is_file()

    async def test_installing_new_version_disables_previous(self, installer, run_context, bundles_dir):
        await installer.install("analytics", version="0.7.1")
        await installer.install("analytics", version="0.7.2")
        assert _marker(bundles_dir, "0.7.1").is_file()
        assert not _marker(bundles_dir, "0.7.2").exists()
        assert IdentifierRegistry(run_context.identifiers_file).get("analytics").version == "0.7.2"

    async def test_new_version_keeps_directory_shared_with_other_key(self, installer, bundles_dir):
        await installer.install("analytics", version="0.7.1")
        await installer.install("ana2", group_id=JAVA_GROUP, artifact_id="analytics-plugin", version="0.7.1")
        await installer.install("analytics", version="0.7.2")
        assert not _marker(bundles_dir, "0.7.1").exists()
        assert installer.identifiers.get("ana2").version == "0.7.1"


# ─── uninstall ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
class TestUninstall:
    @pytest.mark.parametrize("token", ["analytics", "analytics-plugin"])
    async def test_uninstall_by_key_or_name(self, installer, run_context, bundles_dir, token):
        await installer.install("analytics", version="0.7.1")
        removed = await installer.uninstall(token)

        assert [e.version for e in removed] == ["0.7.1"]
        assert len(IdentifierRegistry(run_context.identifiers_file)) == 0
        assert _marker(bundles_dir).is_file()
        assert _artifact(bundles_dir).read_bytes() == ANALYTICS_071

    async def test_unknown_plugin_leaves_state_untouched(self, installer, run_context):
        await installer.install("analytics", version="0.7.1")
        before = run_context.identifiers_file.read_text()
        with pytest.raises(PluginNotFoundError):
            await installer.uninstall("stripe")
        assert run_context.identifiers_file.read_text() == before

    async def test_version_filter(self, installer, run_context):
        await installer.install("analytics", version="0.7.1")
        with pytest.raises(PluginNotFoundError):
            await installer.uninstall("analytics", version="0.7.2")
        removed = await installer.uninstall("analytics", version="0.7.1")
        assert len(removed) == 1

    async def test_uninstall_twice_raises(self, installer):
        await installer.install("analytics", version="0.7.1")
        await installer.uninstall("analytics")
        with pytest.raises(PluginNotFoundError):
            await installer.uninstall("analytics")

    async def test_missing_version_dir_still_unregisters(self, installer, run_context, bundles_dir):
        import shutil
        await installer.install("analytics", version="0.7.1")
        shutil.rmtree(_version_dir(bundles_dir))
        await installer.uninstall("analytics")
        assert "analytics" not in IdentifierRegistry(run_context.identifiers_file)

    async def test_reinstall_after_uninstall_reenables(self, installer, transport, run_context, bundles_dir):
        await installer.install("analytics", version="0.7.1")
        await installer.uninstall("analytics")
        result = await installer.install("analytics", version="0.7.1")

        assert result.downloaded is False
        assert not _marker(bundles_dir).exists()
        assert "analytics" in IdentifierRegistry(run_context.identifiers_file)
        assert transport.fetch_calls == [str(COORD_071)]

    async def test_shared_version_dir_stays_enabled_for_remaining_key(self, installer, run_context, bundles_dir):
        await installer.install("analytics", version="0.7.1")
        await installer.install("ana2", group_id=JAVA_GROUP, artifact_id="analytics-plugin", version="0.7.1")

        await installer.uninstall("ana2")
        assert not _marker(bundles_dir).exists()
        assert list(IdentifierRegistry(run_context.identifiers_file).list_identifiers()) == ["analytics"]
        [result] = installer.verify()
        assert result.status == VerificationStatus.OK

        await installer.uninstall("analytics")
        assert _marker(bundles_dir).is_file()

    async def test_uninstall_by_name_disables_shared_dir(self, installer, run_context, bundles_dir):
        await installer.install("analytics", version="0.7.1")
        await installer.install("ana2", group_id=JAVA_GROUP, artifact_id="analytics-plugin", version="0.7.1")
        removed = await installer.uninstall("analytics-plugin")
        assert len(removed) == 2
        assert _marker(bundles_dir).is_file()
        assert len(IdentifierRegistry(run_context.identifiers_file)) == 0


# ─── upgrade ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
class TestUpgrade:
    async def test_upgrade_to_latest(self, installer, run_context, bundles_dir):
        await installer.install("analytics", version="0.7.1")
        result = await installer.upgrade("analytics")
        assert result.version == "0.7.2"
        assert _marker(bundles_dir, "0.7.1").is_file()
        assert IdentifierRegistry(run_context.identifiers_file).get("analytics").version == "0.7.2"

    async def test_upgrade_unregistered_raises(self, installer, transport):
        with pytest.raises(PluginNotFoundError):
            await installer.upgrade("analytics")
        assert transport.calls == 0

    async def test_upgrade_local_install_raises(self, installer, tmp_path):
        local = tmp_path / "custom-plugin-1.0.0.jar"
        local.write_bytes(b"custom")
        await installer.install_from_file(local)
        with pytest.raises(ResolutionError):
            await installer.upgrade("custom-plugin")

    async def test_upgrade_keeps_classifier(self, acme_installer, bundles_dir):
        await _install_acme(acme_installer)
        result = await acme_installer.upgrade("acme")

        assert result.version == "1.1"
        assert result.coordinate == str(ACME_FAT.with_version("1.1"))
        assert result.path.name == "acme-plugin-1.1-jar-with-deps.jar"
        assert acme_installer._transport.list_calls == [str(ACME_FAT)]
        assert (bundles_dir / "plugins" / "java" / "acme-plugin" / "1.0" / "tmp" / "disabled.txt").is_file()

    async def test_upgrade_reads_registry_under_lock(self, installer, transport):
        await installer.install("analytics", version="0.7.1")
        async with installer._lock:
            pending = asyncio.create_task(installer.upgrade("analytics"))
            await asyncio.sleep(0)
            installer.identifiers.remove("analytics")
        with pytest.raises(PluginNotFoundError):
            await pending
        assert transport.fetch_calls == [str(COORD_071)]


# ─── install_from_file ───────────────────────────────────────────────────────


@pytest.mark.asyncio
class TestInstallFromFile:
    async def test_name_and_version_from_file_name(self, installer, run_context, bundles_dir, tmp_path):
        local = tmp_path / "xxx-foo-1.0.0-SNAPSHOT.jar"
        local.write_bytes(b"local jar")
        result = await installer.install_from_file(local)

        assert result.key == "xxx-foo"
        assert result.version == "1.0.0-SNAPSHOT"
        assert result.coordinate is None
        assert result.downloaded is False
        target = bundles_dir / "plugins" / "java" / "xxx-foo" / "1.0.0-SNAPSHOT" / local.name
        assert target.read_bytes() == b"local jar"

        entry = IdentifierRegistry(run_context.identifiers_file).get("xxx-foo")
        assert entry.group_id is None
        assert not run_context.checksum_file.exists()

    async def test_explicit_key_version_language(self, installer, bundles_dir, tmp_path):
        local = tmp_path / "my-gem.tar.gz"
        local.write_bytes(b"tarball")
        result = await installer.install_from_file(
            local, key="mine", version="3.0", language=PluginLanguage.RUBY,
        )
        assert result.plugin_name == "my"
        assert (bundles_dir / "plugins" / "ruby" / "my" / "3.0" / "my-gem.tar.gz").is_file()

    async def test_missing_file_raises(self, installer, tmp_path):
        with pytest.raises(ResolutionError):
            await installer.install_from_file(tmp_path / "absent-1.0.jar")

    async def test_underivable_version_raises(self, installer, tmp_path):
        local = tmp_path / "xxx-foo-abc.jar"
        local.write_bytes(b"x")
        with pytest.raises(ResolutionError):
            await installer.install_from_file(local)


# ─── list / verify ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
class TestListAndVerify:
    async def test_list_installed(self, installer):
        await installer.install("analytics", version="0.7.1")
        await installer.install("analytics", version="0.7.2")
        rows = [(p.version, p.disabled, p.key) for p in installer.list_installed()]
        assert rows == [("0.7.1", True, None), ("0.7.2", False, "analytics")]

    async def test_verify_ok(self, installer):
        await installer.install("analytics", version="0.7.1")
        [result] = installer.verify()
        assert result.status == VerificationStatus.OK
        assert result.actual == result.expected

    async def test_verify_detects_tampering(self, installer, bundles_dir):
        await installer.install("analytics", version="0.7.1")
        _artifact(bundles_dir).write_bytes(b"tampered")
        [result] = installer.verify()
        assert result.status == VerificationStatus.MISMATCH

    async def test_verify_missing_artifact(self, installer, bundles_dir):
        await installer.install("analytics", version="0.7.1")
        _artifact(bundles_dir).unlink()
        [result] = installer.verify()
        assert result.status == VerificationStatus.MISSING

    async def test_verify_local_install_is_untracked(self, installer, tmp_path):
        local = tmp_path / "xxx-foo-1.0.jar"
        local.write_bytes(b"x")
        await installer.install_from_file(local)
        [result] = installer.verify()
        assert result.status == VerificationStatus.UNTRACKED

    async def test_verify_classified_artifact(self, acme_installer, run_context):
        installed = await _install_acme(acme_installer)
        [result] = acme_installer.verify()
        assert result.status == VerificationStatus.OK
        assert result.path == installed.path
        assert result.path.name == "acme-plugin-1.0-jar-with-deps.jar"
        assert result.expected == ChecksumStore(run_context.checksum_file).lookup(ACME_FAT.with_version("1.0"))

        installed.path.write_bytes(b"tampered")
        [result] = acme_installer.verify()
        assert result.status == VerificationStatus.MISMATCH

    async def test_registry_file_format(self, installer, run_context):
        await installer.install("analytics", version="0.7.1")
        on_disk = json.loads(run_context.identifiers_file.read_text())
        assert list(on_disk) == ["analytics"]
        assert on_disk["analytics"]["version"] == "0.7.1"
