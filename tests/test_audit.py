"""
Tests for formulary.core.audit.

Coverage targets:
- Offline record checks (version, URL consistency, digests, mappings)
- Online checks against archives served through httpx.MockTransport
- Cross-version history checks
"""
from __future__ import annotations

from dataclasses import replace

import httpx

from conftest import LINUX_TARGET, TODOR_FILES, build_tarball, make_formula, sha256_of
from formulary.core.audit import ERROR, WARNING, audit_formula, audit_history, has_errors
from formulary.models.formula import FileMapping, Variant


def messages(problems, severity=None) -> list[str]:
    return [p.message for p in problems if severity is None or p.severity == severity]


class TestOfflineAudit:

    def test_clean_record(self):
        assert audit_formula(make_formula()) == []

    def test_invalid_version(self):
        problems = audit_formula(make_formula(version="0.6"))

        assert any("not a semantic version" in m for m in messages(problems, ERROR))

    def test_hardcoded_url_must_mention_version(self):
        formula = make_formula(version="0.6.0")
        stale = Variant(
            os="linux",
            target=LINUX_TARGET,
            sha256="0" * 64,
            url=f"https://example.com/v0.5.1/todor-v0.5.1-{LINUX_TARGET}.tar.gz",
        )
        formula = replace(formula, variants=(formula.variants[0], stale))

        problems = audit_formula(formula)

        assert any("does not mention version 0.6.0" in m for m in messages(problems, ERROR))

    def test_archive_naming_convention_is_a_warning(self):
        formula = replace(
            make_formula(),
            url_template="https://example.com/{version}/{target}.tgz",
        )

        problems = audit_formula(formula)

        assert not has_errors(problems)
        assert any("expected todor-v0.6.0" in m for m in messages(problems, WARNING))

    def test_bad_digest(self):
        problems = audit_formula(make_formula(linux_sha="abc"))

        assert any("64 character hex digest" in m for m in messages(problems, ERROR))

    def test_duplicate_platform(self):
        formula = make_formula()
        formula = replace(formula, variants=formula.variants + (formula.variants[1],))

        problems = audit_formula(formula)

        assert "more than one variant for linux/amd64" in messages(problems, ERROR)

    def test_no_variants(self):
        formula = replace(make_formula(), variants=())

        assert "no platform variants declared" in messages(audit_formula(formula))

    def test_requires_a_binary(self):
        formula = make_formula(install=(FileMapping(source="complete/_todor", kind="zsh_completion"),))

        assert any("no 'bin' entry" in m for m in messages(audit_formula(formula), ERROR))

    def test_install_source_must_stay_in_archive(self):
        formula = make_formula(install=(FileMapping(source="../todor", kind="bin"),))

        assert any("escapes the archive" in m for m in messages(audit_formula(formula), ERROR))

    def test_install_destinations_must_be_unique(self):
        formula = make_formula(install=(
            FileMapping(source="todor", kind="bin"),
            FileMapping(source="other/todor", kind="bin"),
        ))

        assert any("both install to bin/todor" in m for m in messages(audit_formula(formula), ERROR))

    def test_rename_must_be_a_file_name(self):
        formula = make_formula(install=(FileMapping(source="todor", kind="bin", rename="../x"),))

        assert any("not a plain file name" in m for m in messages(audit_formula(formula), ERROR))

    def test_self_conflict_warning(self):
        problems = audit_formula(make_formula(conflicts_with=("todor",)))

        assert messages(problems) == ["formula declares a conflict with itself"]


class TestOnlineAudit:

    def serve(self, archives: dict[str, bytes]) -> httpx.Client:
        def handler(request):
            name = request.url.path.split("/")[-1]
            if name in archives:
                return httpx.Response(200, content=archives[name])
            return httpx.Response(404)

        return httpx.Client(transport=httpx.MockTransport(handler))

    def release(self, tmp_path, files=TODOR_FILES):
        archives = {}
        for target in ("x86_64-apple-darwin", LINUX_TARGET):
            name = f"todor-v0.6.0-{target}.tar.gz"
            path = build_tarball(tmp_path / name, files, top=f"todor-v0.6.0-{target}")
            archives[name] = path.read_bytes()
        return archives

    def formula_for(self, tmp_path, archives):
        darwin, linux = (
            sha256_of(tmp_path / f"todor-v0.6.0-{t}.tar.gz")
            for t in ("x86_64-apple-darwin", LINUX_TARGET)
        )
        return make_formula(linux_sha=linux, darwin_sha=darwin)

    def test_matching_archives(self, tmp_path):
        archives = self.release(tmp_path)
        formula = self.formula_for(tmp_path, archives)

        problems = audit_formula(formula, online=True, client=self.serve(archives))

        assert problems == []

    def test_digest_mismatch(self, tmp_path):
        archives = self.release(tmp_path)
        formula = make_formula(
            darwin_sha=sha256_of(tmp_path / "todor-v0.6.0-x86_64-apple-darwin.tar.gz"),
            linux_sha="e" * 64,
        )

        problems = audit_formula(formula, online=True, client=self.serve(archives))

        assert len(problems) == 1
        assert "checksum mismatch" in problems[0].message
        assert problems[0].message.startswith(LINUX_TARGET)

    def test_missing_archive(self, tmp_path):
        archives = self.release(tmp_path)
        formula = self.formula_for(tmp_path, archives)
        del archives[f"todor-v0.6.0-{LINUX_TARGET}.tar.gz"]

        problems = audit_formula(formula, online=True, client=self.serve(archives))

        assert any("HTTP 404" in m for m in messages(problems, ERROR))

    def test_install_source_missing_from_archive(self, tmp_path):
        files = {k: v for k, v in TODOR_FILES.items() if k != "complete/todor.fish"}
        archives = self.release(tmp_path, files)
        formula = self.formula_for(tmp_path, archives)

        problems = audit_formula(formula, online=True, client=self.serve(archives))

        assert messages(problems) == [
            "x86_64-apple-darwin: archive has no file complete/todor.fish",
            f"{LINUX_TARGET}: archive has no file complete/todor.fish",
        ]

    def test_offline_errors_skip_downloads(self, tmp_path):
        def handler(request):
            raise AssertionError("no download expected")

        client = httpx.Client(transport=httpx.MockTransport(handler))
        problems = audit_formula(make_formula(version="bad"), online=True, client=client)

        assert has_errors(problems)


class TestHistoryAudit:

    def test_clean_history(self):
        records = [
            make_formula(version="0.5.1", linux_sha="a" * 64, darwin_sha="b" * 64),
            make_formula(version="0.6.0", linux_sha="c" * 64, darwin_sha="d" * 64),
        ]

        assert audit_history(records) == []

    def test_reused_digest(self):
        """
        An archive belongs to exactly one release record.
        """
        records = [
            make_formula(version="0.5.1", linux_sha="a" * 64, darwin_sha="b" * 64),
            make_formula(version="0.6.0", linux_sha="a" * 64, darwin_sha="d" * 64),
        ]

        problems = audit_history(records)

        assert messages(problems) == [
            f"0.6.0 ({LINUX_TARGET}) reuses the archive digest of 0.5.1"
        ]

    def test_duplicate_version(self):
        record = make_formula()

        problems = audit_history([record, record])

        assert "version 0.6.0 is recorded twice" in messages(problems)
