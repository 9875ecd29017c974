import subprocess
from unittest import mock

import pytest

from docfetch.model import NotFoundError, NotModifiedError
from docfetch.util import expand
from docfetch.vcs import (
    UrlTemplates,
    download_git,
    download_svn,
    get_svn_revision,
    get_vcs_dir,
    lookup_url_template,
)

SHA = "a" * 40
GO1_SHA = "b" * 40


class FakeRun:
    """Stands in for subprocess.run, answering by command."""

    def __init__(self, responses, failing=()):
        self.responses = responses
        self.failing = set(failing)
        self.calls = []

    def __call__(self, args, **kwargs):
        self.calls.append((tuple(args), kwargs.get("cwd")))
        key = tuple(args[:2])
        target = args[-1]
        if target in self.failing or key in self.failing:
            raise subprocess.CalledProcessError(1, args)
        return subprocess.CompletedProcess(args, 0, stdout=self.responses.get(key, b""))


def ls_remote(*pairs):
    return "".join(f"{sha}\trefs/{ref}\n" for sha, ref in pairs).encode()


def test_lookup_known_host():
    template, match = lookup_url_template("git.gitorious.org/foo/bar", "/sub", "master")
    assert template.file_browse == "https://gitorious.org/{repo}/blobs/{tag}/{dir}{0}"
    assert template.line == "%s#line%d"
    assert match == {"dir": "sub/", "tag": "master", "repo": "foo/bar"}
    assert expand(template.project, match) == "https://gitorious.org/foo/bar"


def test_lookup_googlesource_groups():
    template, match = lookup_url_template("go.googlesource.com/tools", "", "go1")
    assert match["r1"] == "go"
    assert match["r2"] == "tools"
    assert match["dir"] == ""
    assert template.line == "%s#%d"


def test_lookup_unknown_host():
    template, match = lookup_url_template("example.com/foo", "/x", "master")
    assert template == UrlTemplates()
    assert match == {}


def test_unsupported_vcs(tmp_path):
    with pytest.raises(NotFoundError) as info:
        get_vcs_dir({"repo": "example.com/foo", "vcs": "hg", "dir": ""}, "", str(tmp_path))
    assert str(info.value) == "VCS not supported: hg"


def _checkout(tmp_path, commit=SHA):
    root = tmp_path / "example.com" / "foo.git"
    (root / ".git").mkdir(parents=True)
    (root / ".git" / "HEAD").write_text(commit + "\n")
    sub = root / "sub"
    (sub / "inner").mkdir(parents=True)
    (sub / ".hidden").mkdir()
    (sub / "a.go").write_bytes(b"package a\n")
    (sub / "_skip.go").write_bytes(b"package skip\n")
    (sub / "README").write_bytes(b"readme")
    (sub / "notes.txt").write_bytes(b"notes")
    return root


def test_get_vcs_dir_reads_checkout(tmp_path):
    _checkout(tmp_path)
    fake = FakeRun({("git", "ls-remote"): ls_remote((SHA, "heads/master"))})
    match = {"repo": "example.com/foo", "vcs": "git", "dir": "/sub"}
    with mock.patch("subprocess.run", fake):
        directory = get_vcs_dir(match, "", str(tmp_path))
    assert directory.etag == "http-" + SHA
    assert [f.name for f in directory.files] == ["README", "a.go"]
    assert directory.files[1].data == b"package a\n"
    assert directory.subdirectories == ["inner"]
    assert directory.project_root == "example.com/foo.git"
    assert directory.project_name == "foo"
    assert directory.vcs == "git"
    assert directory.line_fmt == ""
    assert all(not args[1] == "checkout" for args, _ in fake.calls)


def test_get_vcs_dir_not_modified(tmp_path):
    _checkout(tmp_path)
    fake = FakeRun({("git", "ls-remote"): ls_remote((SHA, "heads/master"))})
    match = {"repo": "example.com/foo", "vcs": "git", "dir": "/sub"}
    with mock.patch("subprocess.run", fake), pytest.raises(NotModifiedError):
        get_vcs_dir(match, "http-" + SHA, str(tmp_path))


def test_get_vcs_dir_scheme_from_etag(tmp_path):
    _checkout(tmp_path)
    fake = FakeRun({("git", "ls-remote"): ls_remote((SHA, "heads/master"))})
    match = {"repo": "example.com/foo", "vcs": "git", "dir": "/sub"}
    with mock.patch("subprocess.run", fake):
        directory = get_vcs_dir(match, "https-old", str(tmp_path))
    remotes = [args for args, _ in fake.calls if args[1] == "ls-remote"]
    assert remotes == [("git", "ls-remote", "--heads", "--tags", "https://example.com/foo")]
    assert directory.etag == "https-" + SHA


def test_get_vcs_dir_missing_directory(tmp_path):
    _checkout(tmp_path)
    fake = FakeRun({("git", "ls-remote"): ls_remote((SHA, "heads/master"))})
    match = {"repo": "example.com/foo", "vcs": "git", "dir": "/nothere"}
    with mock.patch("subprocess.run", fake), pytest.raises(NotFoundError):
        get_vcs_dir(match, "", str(tmp_path))


def test_get_vcs_dir_file_is_not_directory(tmp_path):
    _checkout(tmp_path)
    fake = FakeRun({("git", "ls-remote"): ls_remote((SHA, "heads/master"))})
    match = {"repo": "example.com/foo", "vcs": "git", "dir": "/sub/a.go"}
    with mock.patch("subprocess.run", fake), pytest.raises(NotFoundError) as info:
        get_vcs_dir(match, "", str(tmp_path))
    assert "is not a directory" in str(info.value)


def test_download_git_all_schemes_fail(tmp_path):
    fake = FakeRun({}, failing={("git", "ls-remote")})
    with mock.patch("subprocess.run", fake), pytest.raises(NotFoundError) as info:
        download_git(["http", "https"], "example.com/foo", "example.com/foo", "", str(tmp_path))
    assert str(info.value) == "VCS not found"
    assert len(fake.calls) == 2


def test_download_git_falls_back_to_next_scheme(tmp_path):
    _checkout(tmp_path)
    fake = FakeRun(
        {("git", "ls-remote"): ls_remote((SHA, "heads/master"))},
        failing={"http://example.com/foo"},
    )
    with mock.patch("subprocess.run", fake):
        tag, etag = download_git(
            ["http", "https"], "example.com/foo", "example.com/foo", "", str(tmp_path)
        )
    assert (tag, etag) == ("master", "https-" + SHA)


def test_download_git_no_branch(tmp_path):
    fake = FakeRun({("git", "ls-remote"): ls_remote((SHA, "heads/develop"))})
    with mock.patch("subprocess.run", fake), pytest.raises(NotFoundError) as info:
        download_git(["http"], "example.com/foo", "example.com/foo", "", str(tmp_path))
    assert str(info.value) == "Tag or branch not found."


def test_download_git_clones_and_prefers_go1(tmp_path):
    fake = FakeRun(
        {("git", "ls-remote"): ls_remote((SHA, "heads/master"), (GO1_SHA, "tags/go1"))}
    )
    with mock.patch("subprocess.run", fake):
        tag, etag = download_git(["git"], "example.com/foo", "example.com/foo", "", str(tmp_path))
    assert tag == "go1"
    assert etag == "git-" + GO1_SHA
    local = str(tmp_path / "example.com" / "foo.git")
    commands = [args[:2] for args, _ in fake.calls]
    assert commands == [("git", "ls-remote"), ("git", "clone"), ("git", "checkout")]
    assert fake.calls[1][0][-1] == local
    assert fake.calls[2] == (("git", "checkout", "--detach", "--force", GO1_SHA), local)


def test_download_git_fetches_stale_checkout(tmp_path):
    _checkout(tmp_path, commit=GO1_SHA)
    fake = FakeRun({("git", "ls-remote"): ls_remote((SHA, "heads/master"))})
    with mock.patch("subprocess.run", fake):
        tag, etag = download_git(
            ["http"], "example.com/foo", "example.com/foo", "", str(tmp_path)
        )
    assert (tag, etag) == ("master", "http-" + SHA)
    commands = [args[:2] for args, _ in fake.calls]
    assert commands == [("git", "ls-remote"), ("git", "fetch"), ("git", "checkout")]


def test_get_svn_revision():
    fake = FakeRun({("svn", "info"): b"Path: x\nLast Changed Rev: 42\nURL: y\n"})
    with mock.patch("subprocess.run", fake):
        assert get_svn_revision("http://example.com/repo") == "42"


def test_get_svn_revision_missing():
    fake = FakeRun({("svn", "info"): b"Path: x\n"})
    with mock.patch("subprocess.run", fake), pytest.raises(NotFoundError) as info:
        get_svn_revision("http://example.com/repo")
    assert str(info.value) == "Last changed revision not found"


def test_download_svn_checks_out_when_missing(tmp_path):
    local = str(tmp_path / "example.com" / "repo.svn")
    fake = FakeRun(
        {("svn", "info"): b"Last Changed Rev: 42\n"},
        failing={local},
    )
    with mock.patch("subprocess.run", fake):
        result = download_svn(["http"], "example.com/repo", "example.com/repo", "", str(tmp_path))
    assert result == ("", "http-42")
    checkout = fake.calls[-1][0]
    assert checkout == ("svn", "checkout", "http://example.com/repo", "-r", "42", local)


def test_download_svn_up_to_date(tmp_path):
    fake = FakeRun({("svn", "info"): b"Last Changed Rev: 42\n"})
    with mock.patch("subprocess.run", fake):
        result = download_svn(["svn"], "example.com/repo", "example.com/repo", "", str(tmp_path))
    assert result == ("", "svn-42")
    assert [args[1] for args, _ in fake.calls] == ["info", "info"]


def test_download_svn_not_modified(tmp_path):
    fake = FakeRun({("svn", "info"): b"Last Changed Rev: 42\n"})
    with mock.patch("subprocess.run", fake), pytest.raises(NotModifiedError):
        download_svn(["http"], "example.com/repo", "example.com/repo", "http-42", str(tmp_path))


def test_download_svn_no_scheme_works(tmp_path):
    fake = FakeRun({}, failing={("svn", "info")})
    with mock.patch("subprocess.run", fake), pytest.raises(NotFoundError) as info:
        download_svn(["http", "svn"], "example.com/repo", "example.com/repo", "", str(tmp_path))
    assert str(info.value) == "VCS not found"