"""Static archetype table.

Each archetype fixes a directory list, the boilerplate files rendered into
every project of that type, the default features entities get when the
specification names none, and the directories code elements land in.
Boilerplate templates are parameterised only by project metadata (module
name, package name, description, Go version), never by entity content.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from goforge.generator.accumulator import ContentKind

# ---------------------------------------------------------------------------
# Boilerplate templates
# ---------------------------------------------------------------------------

GO_MOD = """module {{ module_name }}

go {{ go_version }}
"""

GITIGNORE = """# Binaries
bin/
*.exe
*.dll
*.so
*.dylib

# Test output
*.test
*.out
coverage.html

# Dependencies
vendor/

# Environment
.env
.env.local

# Editors
.idea/
.vscode/
*.swp
.DS_Store
"""

MAKEFILE = (
    "BINARY := {{ package_name }}\n"
    "\n"
    ".PHONY: build test vet fmt run clean\n"
    "\n"
    "build:\n"
    "{% if entrypoint %}\n"
    "\tgo build -o bin/$(BINARY) {{ build_target }}\n"
    "{% else %}\n"
    "\tgo build ./...\n"
    "{% endif %}\n"
    "\n"
    "test:\n"
    "\tgo test ./...\n"
    "\n"
    "vet:\n"
    "\tgo vet ./...\n"
    "\n"
    "fmt:\n"
    "\tgofmt -s -w .\n"
    "\n"
    "{% if entrypoint %}\n"
    "run:\n"
    "\tgo run {{ build_target }}\n"
    "\n"
    "{% endif %}\n"
    "clean:\n"
    "\trm -rf bin/\n"
)

README = """# {{ project_name }}

{{ description }}

## Layout

{% for directory in directories %}
- `{{ directory }}/`
{% endfor %}

## Development

```bash
make build   # compile into bin/
make test    # run the test suite
make vet     # static checks
```
"""

DOCKERFILE = """FROM golang:{{ go_version }}-alpine AS build
WORKDIR /src
COPY go.mod ./
COPY . .
RUN CGO_ENABLED=0 go build -o /out/{{ package_name }} {{ build_target }}

FROM alpine:3.20
COPY --from=build /out/{{ package_name }} /usr/local/bin/{{ package_name }}
{% if serve_static %}
COPY web/static /srv/web/static
WORKDIR /srv
{% endif %}
EXPOSE 8080
ENTRYPOINT ["/usr/local/bin/{{ package_name }}"]
"""

SERVER_MAIN = """package main

import (
	"context"
	"encoding/json"
	"errors"
	"log"
	"net/http"
	"os"
	"os/signal"
	"syscall"
	"time"
)

func main() {
	addr := os.Getenv("ADDR")
	if addr == "" {
		addr = ":8080"
	}

	mux := http.NewServeMux()
	mux.HandleFunc("GET /health", func(w http.ResponseWriter, r *http.Request) {
		w.Header().Set("Content-Type", "application/json")
		_ = json.NewEncoder(w).Encode(map[string]string{"status": "ok", "service": {{ project_name | go_quote }}})
	})
{% if serve_static %}
	mux.Handle("GET /", http.FileServer(http.Dir("web/static")))
{% endif %}

	server := &http.Server{Addr: addr, Handler: mux, ReadHeaderTimeout: 10 * time.Second}

	go func() {
		log.Println({{ project_name | go_quote }}, "listening on", addr)
		if err := server.ListenAndServe(); err != nil && !errors.Is(err, http.ErrServerClosed) {
			log.Fatalf("server error: %v", err)
		}
	}()

	stop := make(chan os.Signal, 1)
	signal.Notify(stop, os.Interrupt, syscall.SIGTERM)
	<-stop

	ctx, cancel := context.WithTimeout(context.Background(), 10*time.Second)
	defer cancel()
	if err := server.Shutdown(ctx); err != nil {
		log.Printf("shutdown error: %v", err)
	}
}
"""

WORKER_MAIN = """package main

import (
	"context"
	"log"
	"os"
	"os/signal"
	"syscall"
	"time"
)

func main() {
	ctx, stop := signal.NotifyContext(context.Background(), os.Interrupt, syscall.SIGTERM)
	defer stop()

	ticker := time.NewTicker(30 * time.Second)
	defer ticker.Stop()

	log.Println({{ project_name | go_quote }}, "worker started")
	for {
		select {
		case <-ctx.Done():
			log.Println("worker stopping")
			return
		case <-ticker.C:
			log.Println("polling for jobs")
		}
	}
}
"""

CLI_MAIN = """package main

import (
	"os"

	"{{ module_name }}/internal/commands"
)

func main() {
	os.Exit(commands.Execute(os.Args[1:]))
}
"""

CLI_ROOT = """package commands

import (
	"flag"
	"fmt"
)

// Version is the release version printed by -version.
const Version = "0.1.0"

// Execute parses args, runs the requested command and returns an exit code.
func Execute(args []string) int {
	fs := flag.NewFlagSet({{ package_name | go_quote }}, flag.ContinueOnError)
	showVersion := fs.Bool("version", false, "print the version and exit")
	if err := fs.Parse(args); err != nil {
		return 2
	}
	if *showVersion {
		fmt.Println(Version)
		return 0
	}
	fmt.Println({{ description | go_quote }})
	return 0
}
"""

LIBRARY_DOC = """// Package {{ package_name }} provides {{ project_name }}.
//
// {{ description }}
package {{ package_name }}

// Version is the library release version.
const Version = "0.1.0"
"""

WEB_INDEX = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ project_name }}</title>
</head>
<body>
  <h1>{{ project_name }}</h1>
  <p>{{ description }}</p>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Archetype definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BoilerplateFile:
    """A skeleton file; both *path* and *template* are Jinja2 text."""

    path: str
    template: str
    kind: ContentKind


@dataclass(frozen=True)
class Archetype:
    name: str
    description: str
    directories: tuple[str, ...]
    files: tuple[BoilerplateFile, ...]
    layout: dict[str, str] = field(default_factory=dict)
    default_features: tuple[str, ...] = ()
    entrypoint: str = ""
    serve_static: bool = False


_COMMON_FILES = (
    BoilerplateFile("go.mod", GO_MOD, ContentKind.MANIFEST),
    BoilerplateFile(".gitignore", GITIGNORE, ContentKind.IGNORE),
    BoilerplateFile("Makefile", MAKEFILE, ContentKind.BUILD),
    BoilerplateFile("README.md", README, ContentKind.README),
)
_DOCKERFILE = BoilerplateFile("Dockerfile", DOCKERFILE, ContentKind.CONTAINER)

LAYERS = ("domain", "application", "persistence", "handlers")

ARCHETYPES: dict[str, Archetype] = {
    "microservice": Archetype(
        name="microservice",
        description="HTTP microservice with a layered domain/application/infrastructure layout",
        directories=(
            "cmd/server",
            "internal/domain",
            "internal/application",
            "internal/infrastructure/http",
            "internal/infrastructure/persistence",
            "internal/interfaces/http/handlers",
            "pkg/api",
            "docs",
            "scripts",
            "configs",
        ),
        files=_COMMON_FILES + (
            _DOCKERFILE,
            BoilerplateFile("cmd/server/main.go", SERVER_MAIN, ContentKind.SOURCE),
        ),
        layout={
            "domain": "internal/domain",
            "application": "internal/application",
            "persistence": "internal/infrastructure/persistence",
            "handlers": "internal/interfaces/http/handlers",
        },
        default_features=("crud", "validation", "logging", "monitoring", "docker"),
        entrypoint="cmd/server",
    ),
    "api": Archetype(
        name="api",
        description="REST API server",
        directories=(
            "cmd/api",
            "internal/models",
            "internal/services",
            "internal/repository",
            "internal/handlers",
            "internal/middleware",
            "api",
            "docs",
        ),
        files=_COMMON_FILES + (
            _DOCKERFILE,
            BoilerplateFile("cmd/api/main.go", SERVER_MAIN, ContentKind.SOURCE),
        ),
        layout={
            "domain": "internal/models",
            "application": "internal/services",
            "persistence": "internal/repository",
            "handlers": "internal/handlers",
        },
        default_features=("crud", "validation", "rest_api", "docker"),
        entrypoint="cmd/api",
    ),
    "cli": Archetype(
        name="cli",
        description="Command-line tool",
        directories=(
            "cmd/{{ package_name }}",
            "internal/commands",
            "internal/config",
            "internal/domain",
            "internal/application",
            "internal/store",
            "pkg/utils",
            "docs",
        ),
        files=_COMMON_FILES + (
            BoilerplateFile("cmd/{{ package_name }}/main.go", CLI_MAIN, ContentKind.SOURCE),
            BoilerplateFile("internal/commands/root.go", CLI_ROOT, ContentKind.SOURCE),
        ),
        layout={
            "domain": "internal/domain",
            "application": "internal/application",
            "persistence": "internal/store",
            "handlers": "internal/transport/httpapi",
        },
        default_features=("validation", "config"),
        entrypoint="cmd/{{ package_name }}",
    ),
    "library": Archetype(
        name="library",
        description="Reusable Go library",
        directories=("pkg/models", "pkg/services", "pkg/storage", "internal", "examples", "docs"),
        files=_COMMON_FILES + (
            BoilerplateFile("doc.go", LIBRARY_DOC, ContentKind.SOURCE),
        ),
        layout={
            "domain": "pkg/models",
            "application": "pkg/services",
            "persistence": "pkg/storage",
            "handlers": "pkg/httpapi",
        },
        default_features=("validation",),
    ),
    "web": Archetype(
        name="web",
        description="Web application serving static assets and an HTTP API",
        directories=(
            "cmd/web",
            "internal/models",
            "internal/services",
            "internal/storage",
            "internal/handlers",
            "web/static",
            "web/templates",
            "docs",
        ),
        files=_COMMON_FILES + (
            _DOCKERFILE,
            BoilerplateFile("cmd/web/main.go", SERVER_MAIN, ContentKind.SOURCE),
            BoilerplateFile("web/static/index.html", WEB_INDEX, ContentKind.ASSET),
        ),
        layout={
            "domain": "internal/models",
            "application": "internal/services",
            "persistence": "internal/storage",
            "handlers": "internal/handlers",
        },
        default_features=("crud", "validation", "static_files", "docker"),
        entrypoint="cmd/web",
        serve_static=True,
    ),
    "worker": Archetype(
        name="worker",
        description="Background job worker",
        directories=(
            "cmd/worker",
            "internal/domain",
            "internal/jobs",
            "internal/queue",
            "internal/storage",
            "configs",
            "docs",
        ),
        files=_COMMON_FILES + (
            _DOCKERFILE,
            BoilerplateFile("cmd/worker/main.go", WORKER_MAIN, ContentKind.SOURCE),
        ),
        layout={
            "domain": "internal/domain",
            "application": "internal/jobs",
            "persistence": "internal/storage",
            "handlers": "internal/transport/httpapi",
        },
        default_features=("repository", "service", "validation", "queue"),
        entrypoint="cmd/worker",
    ),
}


def normalize_archetype_name(name: str) -> str:
    """Lower-case *name* and fold ``-`` and spaces into ``_``."""
    return (name or "").strip().lower().replace("-", "_").replace(" ", "_")


def supported_archetypes() -> list[str]:
    return sorted(ARCHETYPES)
