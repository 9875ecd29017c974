# docfetch

docfetch turns a package import path into a directory of source files. It
reads the `go-import` and `go-source` meta tags that a site publishes, and it
can check a repository out with the `git` or `svn` command-line tools and read
the requested directory from it. Next to that it carries the HTTP pieces a
documentation server needs: header parsing, content negotiation, a buffered
response, a `requests` adapter that adds GitHub credentials, a static file
server, health checks and request-scoped logging.

## What is inside

| Module | Purpose |
| --- | --- |
| `docfetch.header` | `Headers`, `AcceptSpec`, `canonical_key`, `copy_headers`, `parse_list`, `parse_accept`, `parse_value_and_params`, `parse_time` |
| `docfetch.negotiate` | `negotiate_content_type`, `negotiate_content_encoding`, `strip_port` |
| `docfetch.respbuf` | `ResponseBuffer`, which collects a status, headers and body and replays them onto another writer |
| `docfetch.transport` | `AuthTransport`, a `requests` adapter that adds a user agent and GitHub API credentials |
| `docfetch.health` | `Handler`, `Checker` and `handle_live`, WSGI health-check endpoints |
| `docfetch.static` | `StaticServer` and `StaticHandler`, which serve files with ETag and cache headers |
| `docfetch.util` | `expand`, `is_doc_file`, `is_valid_path_element`, `overwrite_line_comments`, `best_tag` |
| `docfetch.model` | `File`, `Directory`, `Project`, `DirectoryStatus`, `NotFoundError`, `RemoteError`, `NotModifiedError` |
| `docfetch.present` | `PresentationBuilder` and `Presentation`, which rewrite slide and article files |
| `docfetch.logctx` | context-bound loggers (`use_logger`, `current_logger`, `info`, ...) and `HTTPContextHandler` |
| `docfetch.source` | `Service`, `parse_meta`, `fetch_meta`, `get_dynamic`, `maybe_redirect` |
| `docfetch.vcs` | `get_vcs_dir`, `download_git`, `download_svn`, `get_svn_revision`, `lookup_url_template` |

## Parsing headers and negotiating content

```python
from docfetch.header import Headers, parse_accept
from docfetch.negotiate import negotiate_content_type

headers = Headers()
headers.set("Accept", "text/html, image/png; q=0.5")

parse_accept(headers, "Accept")
# [AcceptSpec(value='text/html', q=1.0), AcceptSpec(value='image/png', q=0.5)]

negotiate_content_type(headers, ["image/png", "text/html"], "")
# 'text/html'
```

The parsing functions accept a `Headers` object or a plain mapping of names to
a value or a list of values.

## Expanding URL templates

```python
from docfetch.util import expand, is_doc_file

expand("https://github.com/{owner}/{repo}", {"owner": "alice", "repo": "pkg"})
# 'https://github.com/alice/pkg'

is_doc_file("main.go")    # True
is_doc_file("_skip.go")   # False
is_doc_file("README.md")  # True
```

## Resolving an import path

`get_dynamic` fetches the page for an import path (HTTPS first, then HTTP),
reads its meta tags and builds a `Directory`. It takes two callables so the
caller decides how repositories are read:

- `get_static(session, path, etag)` returns a `Directory` from a host the
  caller knows, or `None`;
- `get_vcs_dir(match, etag)` is tried next; `docfetch.vcs.get_vcs_dir` fits
  here and checks the repository out with `git` or `svn`, which must be on
  the `PATH`.

```python
import requests

from docfetch.source import get_dynamic
from docfetch.vcs import get_vcs_dir

session = requests.Session()
directory = get_dynamic(
    session,
    "example.com/pkg",
    "",
    lambda session, path, etag: None,
    lambda match, etag: get_vcs_dir(match, etag),
)
print(directory.project_root, [f.name for f in directory.files])
```

Failures are raised: `NotFoundError` when the path cannot be resolved and
`NotModifiedError` when the saved etag is still current.

## Canonical import paths

`maybe_redirect` returns `None` when the request is already at the canonical
path. Otherwise it raises a `NotFoundError` whose `redirect` names the target:
the import comment when there is one, or GitHub's reported casing when the
path differs from it only in case.

```python
from docfetch.model import NotFoundError
from docfetch.source import maybe_redirect

try:
    maybe_redirect("github.com/robpike/ivy", "robpike.io/ivy", "github.com/robpike/ivy")
except NotFoundError as exc:
    print(exc.redirect)  # robpike.io/ivy
```

## Serving static files and health checks

`StaticServer` handlers and `Handler` are ordinary WSGI applications.

```python
from docfetch.health import Handler, handle_live
from docfetch.static import StaticServer

static = StaticServer(dir="assets", max_age=3600)
stylesheet = static.file_handler("site.css")
scripts = static.files_handler("a.js", "b.js")
files = static.directory_handler("/static", "public")

health = Handler()  # healthy until a checker added with health.add() raises
```

A checker is any object whose `check_health()` raises when the resource it
watches is unhealthy.

## Request-scoped logging

`HTTPContextHandler` wraps a WSGI application and, for each request, makes a
logger tagged with a `request_id` current; `docfetch.logctx.info` and its
siblings log through it.

```python
from docfetch.logctx import HTTPContextHandler, info

def app(environ, start_response):
    info("serving", path=environ.get("PATH_INFO"))
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"ok"]

wrapped = HTTPContextHandler(app)
```

## What docfetch does not do

- It has no command-line program and no ready-made web application; it is a
  library to build those from.
- It knows no hosting service of its own. Lookups through a host's API, for
  example GitHub's, are left to the `get_static` callable the caller passes
  to `get_dynamic`.
- Version control checkouts support only git and Subversion.
- It keeps nothing between runs other than the checkouts that `docfetch.vcs`
  leaves in its temporary directory.

## Running the tests

The test suite uses pytest, listed in the `test` extra:

```
pip install -e .[test]
pytest
```