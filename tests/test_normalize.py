"""Tests for the git output parsers."""

from __future__ import annotations

import unittest
from datetime import timedelta, timezone
from pathlib import Path

from git_multirepo.models import ChangeAction, PendingUpdates
from git_multirepo.normalize import (
    action_for_code,
    classify_failure,
    classify_status,
    parse_config_line,
    parse_config_list,
    parse_log,
    parse_name_status_line,
    parse_porcelain_status,
    parse_remote_show,
    parse_status,
)


class ConfigListTests(unittest.TestCase):
    def test_simple_line(self) -> None:
        entry = parse_config_line("core.editor=vim")
        self.assertEqual((entry.category, entry.name, entry.setting), ("core", "editor", "vim"))

    def test_alias_value_is_kept_whole(self) -> None:
        entry = parse_config_line("alias.fp=!git fetch && git pull")
        self.assertEqual((entry.category, entry.name, entry.setting), ("alias", "fp", "!git fetch && git pull"))

    def test_value_containing_equals_splits_on_first(self) -> None:
        entry = parse_config_line("foo.bar=a=b")
        self.assertEqual((entry.category, entry.name, entry.setting), ("foo", "bar", "a=b"))

    def test_nested_key_keeps_remainder_as_name(self) -> None:
        entry = parse_config_line("branch.main.remote=origin")
        self.assertEqual((entry.category, entry.name), ("branch", "main.remote"))

    def test_user_block(self) -> None:
        entries = parse_config_list("user.name=Jane Doe\nuser.email=jane@example.com")
        self.assertEqual([(e.category, e.name, e.setting) for e in entries], [
            ("user", "name", "Jane Doe"),
            ("user", "email", "jane@example.com"),
        ])

    def test_scope_and_origin_columns(self) -> None:
        text = "global\tfile:/home/jane/.gitconfig\tuser.name=Jane\nlocal\tfile:.git/config\tcore.bare=false\n"
        entries = parse_config_list(text)
        self.assertEqual(entries[0].scope, "global")
        self.assertEqual(entries[0].source_file, "/home/jane/.gitconfig")
        self.assertEqual(entries[1].scope, "local")
        self.assertEqual(entries[1].key, "core.bare")

    def test_explicit_scope_is_applied(self) -> None:
        entries = parse_config_list("file:/tmp/x.cfg\tcore.editor=nano", scope="file")
        self.assertEqual(entries[0].scope, "file")
        self.assertEqual(entries[0].source_file, "/tmp/x.cfg")

    def test_malformed_lines_are_skipped_with_warning(self) -> None:
        with self.assertLogs("git_multirepo.normalize", level="WARNING") as logs:
            entries = parse_config_list("core.editor=vim\nnoequals\nnodot=value\n\n")
        self.assertEqual([e.key for e in entries], ["core.editor"])
        self.assertEqual(len(logs.records), 2)


class StatusTests(unittest.TestCase):
    CLEAN = "On branch main\nYour branch is up to date with 'origin/main'.\n\nnothing to commit, working tree clean\n"

    def test_clean(self) -> None:
        self.assertIs(classify_status(self.CLEAN), PendingUpdates.CLEAN)

    def test_staged_wins_over_untracked(self) -> None:
        text = (
            "On branch main\n"
            "Untracked files:\n  (use \"git add <file>...\" to include)\n\tnew.txt\n\n"
            "Changes to be committed:\n\tmodified:   a.txt\n"
        )
        self.assertIs(classify_status(text), PendingUpdates.UNCOMMITTED)

    def test_not_staged_wins_over_untracked(self) -> None:
        text = "Changes not staged for commit:\n\tmodified:   a\n\nUntracked files:\n\tb\n"
        self.assertIs(classify_status(text), PendingUpdates.NOT_STAGED)

    def test_untracked_only(self) -> None:
        text = "On branch main\nUntracked files:\n\tb\n\nnothing added to commit but untracked files present\n"
        self.assertIs(classify_status(text), PendingUpdates.UNTRACKED_PRESENT)

    def test_unknown_text_falls_back(self) -> None:
        with self.assertLogs("git_multirepo.normalize", level="WARNING"):
            summary = parse_status("Auf Branch main\nnichts zu committen\n")
        self.assertIs(summary.pending_updates, PendingUpdates.UNKNOWN)
        self.assertEqual(summary.message, "Auf Branch main\nnichts zu committen\n")

    def test_branch_and_upstream(self) -> None:
        summary = parse_status(self.CLEAN)
        self.assertEqual(summary.branch, "main")
        self.assertEqual(summary.upstream, "origin/main")
        self.assertIs(summary.is_current, True)
        self.assertEqual(summary.message, self.CLEAN)

    def test_ahead_and_behind(self) -> None:
        ahead = parse_status("On branch dev\nYour branch is ahead of 'origin/dev' by 2 commits.\n")
        behind = parse_status("On branch dev\nYour branch is behind 'origin/dev' by 3 commits, and can be fast-forwarded.\n")
        self.assertEqual((ahead.is_current, ahead.ahead, ahead.behind), (False, 2, 0))
        self.assertEqual((behind.is_current, behind.ahead, behind.behind), (False, 0, 3))

    def test_diverged(self) -> None:
        text = (
            "On branch main\nYour branch and 'origin/main' have diverged,\n"
            "and have 1 and 4 different commits each, respectively.\n"
        )
        summary = parse_status(text)
        self.assertEqual((summary.upstream, summary.ahead, summary.behind), ("origin/main", 1, 4))
        self.assertIs(summary.is_current, False)

    def test_detached_head(self) -> None:
        summary = parse_status("HEAD detached at 1a2b3c4\nnothing to commit, working tree clean\n")
        self.assertTrue(summary.detached)
        self.assertEqual(summary.detached_at, "1a2b3c4")
        self.assertEqual(summary.to_dict()["detached_at"], "1a2b3c4")
        self.assertIsNone(summary.branch)
        self.assertIsNone(summary.is_current)


class FileChangeTests(unittest.TestCase):
    def test_rename_line(self) -> None:
        change = parse_name_status_line("R100\told.ps1\tnew.ps1")
        self.assertIs(change.action, ChangeAction.RENAMED)
        self.assertEqual(change.path, "old.ps1=>new.ps1")

    def test_action_table(self) -> None:
        expected = {
            "A": ChangeAction.ADDED,
            "M": ChangeAction.MODIFIED,
            "D": ChangeAction.DELETED,
            "??": ChangeAction.UNKNOWN,
            "R087": ChangeAction.RENAMED,
            "T": ChangeAction.UNKNOWN,
            "C050": ChangeAction.UNKNOWN,
        }
        for code, action in expected.items():
            with self.subTest(code=code):
                self.assertIs(action_for_code(code), action)

    def test_line_without_tab_is_rejected(self) -> None:
        self.assertIsNone(parse_name_status_line("garbage"))

    def test_porcelain(self) -> None:
        text = " M src/app.py\nA  added.txt\nR  old.txt -> new.txt\n?? scratch/\nMM both.py\n"
        changes = parse_porcelain_status(text)
        self.assertEqual(
            [(c.action, c.path) for c in changes],
            [
                (ChangeAction.MODIFIED, "src/app.py"),
                (ChangeAction.ADDED, "added.txt"),
                (ChangeAction.RENAMED, "old.txt=>new.txt"),
                (ChangeAction.UNKNOWN, "scratch/"),
                (ChangeAction.MODIFIED, "both.py"),
            ],
        )

    def test_quoted_paths_are_decoded(self) -> None:
        text = (
            '?? "tab\\there.txt"\n'
            ' M "say \\"hi\\".md"\n'
            'A  "back\\\\slash"\n'
            '?? "caf\\303\\251.txt"\n'
        )
        changes = parse_porcelain_status(text)
        self.assertEqual([c.path for c in changes], ["tab\there.txt", 'say "hi".md', "back\\slash", "caf\u00e9.txt"])

    def test_quoted_name_status_paths_are_decoded(self) -> None:
        change = parse_name_status_line('R100\t"old\\tname"\t"na\\303\\257ve.txt"')
        self.assertEqual(change.path, "old\tname=>na\u00efve.txt")


class LogTests(unittest.TestCase):
    def _record(self, date, subject, commit_hash, files):
        header = "\x1f".join([date, subject, commit_hash, "Jane <jane@example.com>", "Bob <bob@example.com>"])
        body = "".join(f"{line}\n" for line in files)
        return f"\x1e{header}\n\n{body}"

    def test_parses_commits_and_changes(self) -> None:
        text = self._record(
            "2024-03-01T10:15:00+02:00",
            "Rename script",
            "a" * 40,
            ["R100\told.ps1\tnew.ps1", "M\tREADME.md", "A\tdocs/x.md"],
        ) + self._record("2024-02-28T09:00:00+00:00", "Initial", "b" * 40, ["A\tREADME.md"])

        commits, leftovers = parse_log(text, Path("/repos/a"))

        self.assertEqual(leftovers, "")
        self.assertEqual(len(commits), 2)
        first = commits[0]
        self.assertEqual(first.message, "Rename script")
        self.assertEqual(first.author, "Jane <jane@example.com>")
        self.assertEqual(first.committer, "Bob <bob@example.com>")
        self.assertEqual(first.short_hash, "aaaaaaa")
        self.assertEqual(first.date.utcoffset(), timedelta(hours=2))
        self.assertEqual(commits[1].date.tzinfo, timezone.utc)
        grouped = first.changes_by_action()
        self.assertEqual(grouped[ChangeAction.RENAMED], ["old.ps1=>new.ps1"])
        self.assertEqual(grouped[ChangeAction.MODIFIED], ["README.md"])
        self.assertEqual(grouped[ChangeAction.ADDED], ["docs/x.md"])
        self.assertEqual(grouped[ChangeAction.DELETED], [])

    def test_expanded_dict_has_one_key_per_action(self) -> None:
        commits, _ = parse_log(self._record("2024-03-01T10:15:00+02:00", "x", "c" * 40, ["D\tgone.txt"]), Path("/r"))
        data = commits[0].to_dict(expand_actions=True)
        self.assertEqual(data["Deleted"], ["gone.txt"])
        self.assertEqual(data["Unknown"], [])
        self.assertNotIn("changes", data)

    def test_unexpected_text_is_returned_untouched(self) -> None:
        commits, leftovers = parse_log("warning: something odd\n", Path("/r"))
        self.assertEqual(commits, [])
        self.assertEqual(leftovers, "warning: something odd\n")


class RemoteShowTests(unittest.TestCase):
    TEXT = (
        "* remote origin\n"
        "  Fetch URL: git@github.com:jane/tools.git\n"
        "  Push  URL: git@github.com:jane/tools.git\n"
        "  HEAD branch: main\n"
        "  Remote branches:\n"
        "    dev  tracked\n"
        "    main tracked\n"
        "  Local branch configured for 'git pull':\n"
        "    main merges with remote main\n"
        "  Local ref configured for 'git push':\n"
        "    main pushes to main (up to date)\n"
    )

    def test_inline_and_continuation_values(self) -> None:
        remote = parse_remote_show(self.TEXT)
        self.assertEqual(remote.name, "origin")
        self.assertEqual(remote.fetch_url, "git@github.com:jane/tools.git")
        self.assertEqual(remote.push_url, "git@github.com:jane/tools.git")
        self.assertEqual(remote.head_branch, "main")
        self.assertEqual(remote.fields["Remote branches"], ["dev  tracked", "main tracked"])
        self.assertEqual(remote.fields["Local branch configured for 'git pull'"], ["main merges with remote main"])
        self.assertEqual(remote.fields["Local ref configured for 'git push'"], ["main pushes to main (up to date)"])

    def test_git_diagnostics_do_not_hide_labels(self) -> None:
        text = "warning: redirecting to https://example.com/tools.git/\n" + self.TEXT + "hint: run git remote prune\n"
        remote = parse_remote_show(text)
        self.assertEqual(remote.name, "origin")
        self.assertEqual(remote.fetch_url, "git@github.com:jane/tools.git")
        self.assertEqual(remote.head_branch, "main")
        self.assertNotIn("warning", remote.fields)
        self.assertEqual(remote.fields["Local ref configured for 'git push'"], ["main pushes to main (up to date)"])

    def test_header_resets_labels_seen_earlier(self) -> None:
        remote = parse_remote_show("Note: stale output\n" + self.TEXT)
        self.assertEqual(remote.head_branch, "main")

    def test_text_without_labels_yields_empty_fields(self) -> None:
        with self.assertLogs("git_multirepo.normalize", level="WARNING"):
            remote = parse_remote_show("unexpected output without labels\n")
        self.assertEqual(remote.fields, {})


class FailureReasonTests(unittest.TestCase):
    def test_reasons(self) -> None:
        cases = {
            "fatal: unable to access 'https://example.com/x.git/': Could not resolve host: example.com": "network_error",
            "fatal: not a git repository (or any of the parent directories): .git": "not_git_repo",
            "error: Your local changes to the following files would be overwritten by merge": "local_changes_conflict",
            "fatal: Not possible to fast-forward, aborting.": "not_fast_forward",
            "CONFLICT (content): Merge conflict in a.txt": "merge_conflict",
            "nothing to commit, working tree clean": "nothing_to_commit",
            "remote: Permission denied (publickey).": "auth_error",
            "": "unknown",
            "something else entirely": "unknown",
        }
        for text, reason in cases.items():
            with self.subTest(text=text):
                self.assertEqual(classify_failure(text), reason)


if __name__ == "__main__":
    unittest.main()
