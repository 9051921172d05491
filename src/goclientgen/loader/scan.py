from __future__ import annotations

import json
import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Any

from ..errors import LoadError
from .resolve import find_module_root
from .symbols import FieldDecl, GoType, LoadResult, MethodDecl, PackageRef, PackageSnapshot, TypeDecl

logger = logging.getLogger(__name__)


def load_package(*, import_path: str, work_dir: Path, go: str = "go") -> LoadResult:
    """Load and type-check the Go package `import_path` as seen from `work_dir`.

    The declaration graph is produced by a small Go program (stdlib-only, so
    `go run` needs no network access) that type-checks the package from source
    and prints a JSON snapshot of its top-level scope, every named type reachable
    through struct embedding, and the doc comment of every method.
    """
    work_dir = Path(work_dir).resolve()
    module_dir = find_module_root(work_dir)
    logger.debug("loading %s from %s (module root %s)", import_path, work_dir, module_dir)

    obj = _run_loader(go=go, work_dir=work_dir, import_path=import_path)
    return parse_load_output(obj, import_path=import_path)


def _run_loader(*, go: str, work_dir: Path, import_path: str) -> dict[str, Any]:
    with tempfile.TemporaryDirectory(prefix="goclientgen-load-") as td:
        load_dir = Path(td)
        (load_dir / "go.mod").write_text(
            "\n".join(
                [
                    "module goclientgen.goload",
                    "",
                    "go 1.21",
                    "",
                ]
            ),
            encoding="utf-8",
        )
        (load_dir / "main.go").write_text(_loader_go_source(), encoding="utf-8")
        for name, src in _loader_alias_sources().items():
            (load_dir / name).write_text(src, encoding="utf-8")

        try:
            proc = subprocess.run(
                [go, "run", ".", "--go", go, "--dir", str(work_dir), "--pkg", import_path],
                cwd=str(load_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=False,
                check=False,
            )
        except FileNotFoundError as e:
            raise LoadError(
                f"Go toolchain not found (`{go}` is missing from PATH). "
                "Install Go and ensure it is available on PATH, or set GOCLIENTGEN_GO."
            ) from e

        stdout = (proc.stdout or b"").decode("utf-8", errors="replace")
        stderr = (proc.stderr or b"").decode("utf-8", errors="replace")
        if proc.returncode != 0:
            out = "\n".join([s for s in [stdout.strip("\n"), stderr.strip("\n")] if s])
            raise LoadError(f"go package loader failed\n{out}")

        # `go run` may print toolchain messages before the document.
        start = stdout.find("{")
        if start == -1:
            raise LoadError(f"failed to parse go package loader output\n{stdout}")
        try:
            obj = json.loads(stdout[start:])
        except Exception as e:  # noqa: BLE001
            raise LoadError(f"failed to parse go package loader output: {e}\n{stdout}") from e
        if not isinstance(obj, dict):
            raise LoadError("failed to parse go package loader output: expected an object")
        return obj


def parse_load_output(obj: dict[str, Any], *, import_path: str) -> LoadResult:
    """Turn the loader's JSON document into an immutable `LoadResult`."""
    local = obj.get("local")
    if not isinstance(local, dict):
        raise LoadError("cannot open package in current directory")
    if local.get("error") or not local.get("path"):
        raise LoadError(f"cannot open package in current directory: {local.get('error') or 'no package'}")

    packages = obj.get("packages")
    if not isinstance(packages, list):
        packages = []
    if len(packages) != 1:
        raise LoadError(f"go list returned {len(packages)} packages, not 1")
    pkg = packages[0]
    if not isinstance(pkg, dict):
        raise LoadError(f"cannot load {import_path!r}")
    if pkg.get("error"):
        raise LoadError(f"cannot load {import_path!r}: {pkg['error']}")

    errors = obj.get("errors")
    if isinstance(errors, list) and errors:
        details = "\n".join(str(e) for e in errors)
        raise LoadError(f"cannot load {import_path!r}: package does not type-check\n{details}")

    objects: dict[str, str] = {}
    raw_objects = obj.get("objects")
    if isinstance(raw_objects, dict):
        for name, kind in raw_objects.items():
            if isinstance(name, str) and isinstance(kind, str):
                objects[name] = kind

    types: dict[str, TypeDecl] = {}
    raw_types = obj.get("types")
    if isinstance(raw_types, dict):
        for key, raw in raw_types.items():
            if not isinstance(key, str) or not isinstance(raw, dict):
                continue
            types[key] = _parse_decl(key, raw)

    return LoadResult(
        local=_parse_pkg(local),
        server=PackageSnapshot(pkg=_parse_pkg(pkg), objects=objects, types=types),
    )


def _parse_pkg(raw: Any) -> PackageRef:
    if not isinstance(raw, dict):
        raise LoadError("malformed package reference in loader output")
    path = raw.get("path")
    name = raw.get("name")
    if not isinstance(path, str) or not isinstance(name, str):
        raise LoadError("malformed package reference in loader output")
    return PackageRef(path=path, name=name)


def _parse_decl(key: str, raw: dict[str, Any]) -> TypeDecl:
    name = raw.get("name")
    kind = raw.get("kind")
    if not isinstance(name, str) or not isinstance(kind, str):
        raise LoadError(f"malformed type declaration {key} in loader output")
    return TypeDecl(
        id=key,
        pkg=_parse_pkg(raw.get("pkg")),
        name=name,
        kind=kind,
        fields=[_parse_field(f) for f in _list(raw.get("fields"))],
        methods=[_parse_method(m) for m in _list(raw.get("methods"))],
    )


def _parse_field(raw: Any) -> FieldDecl:
    if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
        raise LoadError("malformed struct field in loader output")
    return FieldDecl(
        name=raw["name"],
        type=parse_type(raw.get("type")),
        embedded=bool(raw.get("embedded", False)),
    )


def _parse_method(raw: Any) -> MethodDecl:
    if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
        raise LoadError("malformed method in loader output")
    doc = raw.get("doc")
    pos = raw.get("pos")
    return MethodDecl(
        name=raw["name"],
        params=[parse_type(t) for t in _list(raw.get("params"))],
        results=[parse_type(t) for t in _list(raw.get("results"))],
        pointer=bool(raw.get("pointer", False)),
        variadic=bool(raw.get("variadic", False)),
        doc=doc if isinstance(doc, str) else "",
        pos=pos if isinstance(pos, str) else "",
    )


def parse_type(raw: Any) -> GoType:
    """Decode one recursive type descriptor emitted by the loader."""
    if not isinstance(raw, dict) or not isinstance(raw.get("kind"), str):
        raise LoadError(f"malformed type descriptor in loader output: {raw!r}")
    kind = raw["kind"]
    pkg = raw.get("pkg")
    length = raw.get("len")
    return GoType(
        kind=kind,
        name=raw.get("name") or "",
        id=raw.get("id") or "",
        pkg=_parse_pkg(pkg) if pkg else None,
        underlying=raw.get("underlying") or "",
        args=[parse_type(t) for t in _list(raw.get("args"))],
        elem=parse_type(raw["elem"]) if raw.get("elem") else None,
        key=parse_type(raw["key"]) if raw.get("key") else None,
        length=length if isinstance(length, int) else 0,
        dir=raw.get("dir") or "both",
        params=[parse_type(t) for t in _list(raw.get("params"))],
        results=[parse_type(t) for t in _list(raw.get("results"))],
        variadic=bool(raw.get("variadic", False)),
        fields=[_parse_field(f) for f in _list(raw.get("fields"))],
        methods=[_parse_method(m) for m in _list(raw.get("methods"))],
        embeddeds=[parse_type(t) for t in _list(raw.get("embeddeds"))],
    )


def _list(v: Any) -> list[Any]:
    return v if isinstance(v, list) else []


def _loader_go_source() -> str:
    # Keep this file stdlib-only so `go run` doesn't need network access.
    return r'''
package main

import (
	"bytes"
	"encoding/json"
	"errors"
	"flag"
	"fmt"
	"go/ast"
	"go/importer"
	"go/parser"
	"go/token"
	"go/types"
	"io"
	"os"
	"os/exec"
	"path/filepath"
	"strings"
)

type goListPkg struct {
	ImportPath string
	Name       string
	Dir        string
	GoFiles    []string
	CgoFiles   []string
	Error      *struct{ Err string }
}

type outPkg struct {
	Path  string `json:"path"`
	Name  string `json:"name"`
	Error string `json:"error,omitempty"`
}

type outType struct {
	Kind       string      `json:"kind"`
	Name       string      `json:"name,omitempty"`
	ID         string      `json:"id,omitempty"`
	Pkg        *outPkg     `json:"pkg,omitempty"`
	Underlying string      `json:"underlying,omitempty"`
	Args       []*outType  `json:"args,omitempty"`
	Elem       *outType    `json:"elem,omitempty"`
	Key        *outType    `json:"key,omitempty"`
	Len        int64       `json:"len,omitempty"`
	Dir        string      `json:"dir,omitempty"`
	Params     []*outType  `json:"params,omitempty"`
	Results    []*outType  `json:"results,omitempty"`
	Variadic   bool        `json:"variadic,omitempty"`
	Fields     []outField  `json:"fields,omitempty"`
	Methods    []outMethod `json:"methods,omitempty"`
	Embeddeds  []*outType  `json:"embeddeds,omitempty"`
}

type outField struct {
	Name     string   `json:"name"`
	Type     *outType `json:"type"`
	Embedded bool     `json:"embedded,omitempty"`
}

type outMethod struct {
	Name     string     `json:"name"`
	Pointer  bool       `json:"pointer,omitempty"`
	Params   []*outType `json:"params"`
	Results  []*outType `json:"results"`
	Variadic bool       `json:"variadic,omitempty"`
	Doc      string     `json:"doc,omitempty"`
	Pos      string     `json:"pos,omitempty"`
}

type outDecl struct {
	ID      string      `json:"id"`
	Pkg     outPkg      `json:"pkg"`
	Name    string      `json:"name"`
	Kind    string      `json:"kind"`
	Fields  []outField  `json:"fields"`
	Methods []outMethod `json:"methods"`
}

type outObj struct {
	Local    outPkg             `json:"local"`
	Packages []outPkg           `json:"packages"`
	Errors   []string           `json:"errors"`
	Objects  map[string]string  `json:"objects"`
	Types    map[string]outDecl `json:"types"`
}

var goCmd = "go"

func main() {
	var dir, pkgPath string
	flag.StringVar(&goCmd, "go", "go", "go command")
	flag.StringVar(&dir, "dir", "", "working directory")
	flag.StringVar(&pkgPath, "pkg", "", "server package import path")
	flag.Parse()

	if dir == "" || pkgPath == "" {
		fmt.Fprintln(os.Stderr, "missing --dir or --pkg")
		os.Exit(2)
	}
	if err := os.Chdir(dir); err != nil {
		fmt.Fprintf(os.Stderr, "chdir: %v\n", err)
		os.Exit(2)
	}

	out := outObj{
		Packages: []outPkg{},
		Errors:   []string{},
		Objects:  map[string]string{},
		Types:    map[string]outDecl{},
	}

	local, err := listPkgs(".")
	if err != nil {
		fmt.Fprintln(os.Stderr, err.Error())
		os.Exit(1)
	}
	switch {
	case len(local) != 1:
		out.Local = outPkg{Error: fmt.Sprintf("go list returned %d packages, not 1", len(local))}
	case local[0].Error != nil:
		out.Local = outPkg{Error: local[0].Error.Err}
	default:
		out.Local = outPkg{Path: local[0].ImportPath, Name: local[0].Name}
	}

	pkgs, err := listPkgs(pkgPath)
	if err != nil {
		fmt.Fprintln(os.Stderr, err.Error())
		os.Exit(1)
	}
	for _, p := range pkgs {
		op := outPkg{Path: p.ImportPath, Name: p.Name}
		if p.Error != nil {
			op.Error = p.Error.Err
		}
		out.Packages = append(out.Packages, op)
	}
	if len(pkgs) == 1 && pkgs[0].Error == nil {
		load(pkgs[0], &out)
	}

	enc := json.NewEncoder(os.Stdout)
	enc.SetEscapeHTML(false)
	_ = enc.Encode(out)
}

func listPkgs(pattern string) ([]goListPkg, error) {
	cmd := exec.Command(goCmd, "list", "-e", "-find", "-json", pattern)
	var stdout, stderr bytes.Buffer
	cmd.Stdout = &stdout
	cmd.Stderr = &stderr
	if err := cmd.Run(); err != nil {
		return nil, fmt.Errorf("go list %s failed: %v\n%s", pattern, err, stderr.String())
	}

	dec := json.NewDecoder(&stdout)
	pkgs := []goListPkg{}
	for {
		var p goListPkg
		if err := dec.Decode(&p); err != nil {
			if errors.Is(err, io.EOF) {
				break
			}
			return nil, fmt.Errorf("failed to decode go list json: %v", err)
		}
		pkgs = append(pkgs, p)
	}
	return pkgs, nil
}

type parsedFile struct {
	fset *token.FileSet
	file *ast.File
}

type dumper struct {
	fset    *token.FileSet
	docFset *token.FileSet
	files   map[string]*parsedFile
	out     *outObj
}

func load(p goListPkg, out *outObj) {
	fset := token.NewFileSet()
	d := &dumper{
		fset:    fset,
		docFset: token.NewFileSet(),
		files:   map[string]*parsedFile{},
		out:     out,
	}
	var files []*ast.File
	names := append(append([]string{}, p.GoFiles...), p.CgoFiles...)
	for _, fn := range names {
		path := filepath.Join(p.Dir, fn)
		af, err := parser.ParseFile(fset, path, nil, parser.ParseComments)
		if err != nil {
			out.Errors = append(out.Errors, err.Error())
			continue
		}
		files = append(files, af)
		d.files[path] = &parsedFile{fset: fset, file: af}
	}
	if len(out.Errors) > 0 {
		return
	}

	conf := types.Config{
		Importer:    importer.ForCompiler(fset, "source", nil),
		FakeImportC: true,
		Error: func(err error) {
			out.Errors = append(out.Errors, err.Error())
		},
	}
	pkg, _ := conf.Check(p.ImportPath, fset, files, nil)
	if pkg == nil || len(out.Errors) > 0 {
		return
	}

	scope := pkg.Scope()
	for _, name := range scope.Names() {
		switch obj := scope.Lookup(name).(type) {
		case *types.TypeName:
			out.Objects[name] = "type"
			key := pkg.Path() + "." + name
			if named, ok := unalias(obj.Type()).(*types.Named); ok {
				d.addNamed(key, named)
			} else {
				u := unalias(obj.Type())
				out.Types[key] = outDecl{
					ID:      key,
					Pkg:     pkgOf(pkg),
					Name:    name,
					Kind:    kindOf(u.Underlying()),
					Fields:  d.fields(u.Underlying()),
					Methods: []outMethod{},
				}
			}
		case *types.Func:
			out.Objects[name] = "func"
		case *types.Var:
			out.Objects[name] = "var"
		case *types.Const:
			out.Objects[name] = "const"
		default:
			out.Objects[name] = "other"
		}
	}
}

func (d *dumper) addNamed(key string, named *types.Named) {
	if _, ok := d.out.Types[key]; ok {
		return
	}
	obj := named.Obj()
	decl := outDecl{
		ID:      key,
		Pkg:     pkgOf(obj.Pkg()),
		Name:    obj.Name(),
		Kind:    kindOf(named.Underlying()),
		Fields:  d.fields(named.Underlying()),
		Methods: []outMethod{},
	}
	// Placeholder so embedding cycles terminate.
	d.out.Types[key] = decl

	if iface, ok := named.Underlying().(*types.Interface); ok {
		for i := 0; i < iface.NumMethods(); i++ {
			decl.Methods = append(decl.Methods, d.method(iface.Method(i), false))
		}
	}
	for i := 0; i < named.NumMethods(); i++ {
		m := named.Method(i)
		_, ptr := m.Type().(*types.Signature).Recv().Type().(*types.Pointer)
		decl.Methods = append(decl.Methods, d.method(m, ptr))
	}
	d.out.Types[key] = decl

	st, ok := named.Underlying().(*types.Struct)
	if !ok {
		return
	}
	for i := 0; i < st.NumFields(); i++ {
		f := st.Field(i)
		if !f.Embedded() {
			continue
		}
		t := unalias(f.Type())
		if ptr, ok := t.(*types.Pointer); ok {
			t = unalias(ptr.Elem())
		}
		if n, ok := t.(*types.Named); ok {
			d.addNamed(typeID(n), n)
		}
	}
}

func (d *dumper) fields(u types.Type) []outField {
	out := []outField{}
	st, ok := u.(*types.Struct)
	if !ok {
		return out
	}
	for i := 0; i < st.NumFields(); i++ {
		f := st.Field(i)
		out = append(out, outField{Name: f.Name(), Type: d.typ(f.Type()), Embedded: f.Embedded()})
	}
	return out
}

func (d *dumper) method(m *types.Func, ptr bool) outMethod {
	sig := m.Type().(*types.Signature)
	pos := ""
	if m.Pos().IsValid() {
		pos = d.fset.Position(m.Pos()).String()
	}
	return outMethod{
		Name:     m.Name(),
		Pointer:  ptr,
		Params:   d.tuple(sig.Params()),
		Results:  d.tuple(sig.Results()),
		Variadic: sig.Variadic(),
		Doc:      d.doc(m),
		Pos:      pos,
	}
}

func (d *dumper) tuple(t *types.Tuple) []*outType {
	out := []*outType{}
	for i := 0; i < t.Len(); i++ {
		out = append(out, d.typ(t.At(i).Type()))
	}
	return out
}

var anyType = types.Universe.Lookup("any").Type()

func (d *dumper) typ(t types.Type) *outType {
	t = unalias(t)
	if t == anyType || t == anyType.Underlying() {
		return &outType{Kind: "basic", Name: "any"}
	}
	switch t := t.(type) {
	case *types.Basic:
		return &outType{Kind: "basic", Name: t.Name()}
	case *types.Named:
		obj := t.Obj()
		o := &outType{Kind: "named", Name: obj.Name(), ID: typeID(t), Underlying: kindOf(t.Underlying())}
		if obj.Pkg() != nil {
			p := pkgOf(obj.Pkg())
			o.Pkg = &p
		}
		if args := t.TypeArgs(); args != nil {
			for i := 0; i < args.Len(); i++ {
				o.Args = append(o.Args, d.typ(args.At(i)))
			}
		}
		return o
	case *types.TypeParam:
		return &outType{Kind: "typeparam", Name: t.Obj().Name()}
	case *types.Pointer:
		return &outType{Kind: "pointer", Elem: d.typ(t.Elem())}
	case *types.Slice:
		return &outType{Kind: "slice", Elem: d.typ(t.Elem())}
	case *types.Array:
		return &outType{Kind: "array", Len: t.Len(), Elem: d.typ(t.Elem())}
	case *types.Map:
		return &outType{Kind: "map", Key: d.typ(t.Key()), Elem: d.typ(t.Elem())}
	case *types.Chan:
		dir := "both"
		switch t.Dir() {
		case types.SendOnly:
			dir = "send"
		case types.RecvOnly:
			dir = "recv"
		}
		return &outType{Kind: "chan", Dir: dir, Elem: d.typ(t.Elem())}
	case *types.Signature:
		return &outType{
			Kind:     "func",
			Params:   d.tuple(t.Params()),
			Results:  d.tuple(t.Results()),
			Variadic: t.Variadic(),
		}
	case *types.Struct:
		return &outType{Kind: "struct", Fields: d.fields(t)}
	case *types.Interface:
		o := &outType{Kind: "interface"}
		for i := 0; i < t.NumExplicitMethods(); i++ {
			m := t.ExplicitMethod(i)
			sig := m.Type().(*types.Signature)
			o.Methods = append(o.Methods, outMethod{
				Name:     m.Name(),
				Params:   d.tuple(sig.Params()),
				Results:  d.tuple(sig.Results()),
				Variadic: sig.Variadic(),
			})
		}
		for i := 0; i < t.NumEmbeddeds(); i++ {
			o.Embeddeds = append(o.Embeddeds, d.typ(t.EmbeddedType(i)))
		}
		return o
	}
	return &outType{Kind: "basic", Name: t.String()}
}

// doc returns the doc comment of the function or interface method declared
// at obj's position, parsing its file with comments if needed.
func (d *dumper) doc(obj types.Object) string {
	if !obj.Pos().IsValid() {
		return ""
	}
	pos := d.fset.Position(obj.Pos())
	pf := d.file(pos.Filename)
	if pf == nil {
		return ""
	}
	var doc *ast.CommentGroup
	found := false
	ast.Inspect(pf.file, func(n ast.Node) bool {
		if found {
			return false
		}
		switch n := n.(type) {
		case *ast.FuncDecl:
			if pf.fset.Position(n.Name.Pos()).Offset == pos.Offset {
				found, doc = true, n.Doc
			}
		case *ast.Field:
			for _, name := range n.Names {
				if pf.fset.Position(name.Pos()).Offset == pos.Offset {
					found, doc = true, n.Doc
				}
			}
		}
		return !found
	})
	return commentStr(doc)
}

func (d *dumper) file(filename string) *parsedFile {
	if pf, ok := d.files[filename]; ok {
		return pf
	}
	af, err := parser.ParseFile(d.docFset, filename, nil, parser.ParseComments)
	if err != nil {
		d.files[filename] = nil
		return nil
	}
	pf := &parsedFile{fset: d.docFset, file: af}
	d.files[filename] = pf
	return pf
}

func commentStr(c *ast.CommentGroup) string {
	if c == nil {
		return ""
	}
	lines := make([]string, 0, len(c.List))
	for _, cc := range c.List {
		lines = append(lines, cc.Text)
	}
	return strings.Join(lines, "\n")
}

func typeID(n *types.Named) string {
	return types.TypeString(n, func(p *types.Package) string { return p.Path() })
}

func pkgOf(p *types.Package) outPkg {
	if p == nil {
		return outPkg{}
	}
	return outPkg{Path: p.Path(), Name: p.Name()}
}

func kindOf(u types.Type) string {
	switch u.(type) {
	case *types.Pointer:
		return "pointer"
	case *types.Slice:
		return "slice"
	case *types.Array:
		return "array"
	case *types.Map:
		return "map"
	case *types.Chan:
		return "chan"
	case *types.Signature:
		return "func"
	case *types.Struct:
		return "struct"
	case *types.Interface:
		return "interface"
	}
	return "basic"
}
'''


def _loader_alias_sources() -> dict[str, str]:
    # go/types only grew explicit alias nodes in Go 1.22.
    return {
        "alias_go122.go": "\n".join(
            [
                "//go:build go1.22",
                "",
                "package main",
                "",
                'import "go/types"',
                "",
                "func unalias(t types.Type) types.Type { return types.Unalias(t) }",
                "",
            ]
        ),
        "alias_go121.go": "\n".join(
            [
                "//go:build !go1.22",
                "",
                "package main",
                "",
                'import "go/types"',
                "",
                "func unalias(t types.Type) types.Type { return t }",
                "",
            ]
        ),
    }
