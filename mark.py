import sys
from pathlib import Path

from markup.markup_runtime import TemplateRunner
from markup.markup_serialize import load_context, deserialize


# A basic input prompt.
def read_line(prompt: str) -> str:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return sys.stdin.readline()


def _print_unresolved(result):
    for miss in result.unresolved:
        print(f"warning: line {miss['line']}, col {miss['col']}: {miss['tag']} ({miss['reason']})", file=sys.stderr)


def run_template_file(file_path: str, context_path: str | None = None):
    """Render a template file non-interactively and exit with appropriate status."""
    runner = TemplateRunner()
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    context = {}
    if context_path:
        try:
            context = load_context(context_path)
        except FileNotFoundError:
            print(f"Error: file not found: {context_path}", file=sys.stderr)
            raise SystemExit(1)
    result = runner.handle_template(source, context)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)
    _print_unresolved(result)
    sys.stdout.write(result.value)
    if not result.value.endswith("\n"):
        sys.stdout.write("\n")


def main():
    """Render a template file when provided, otherwise start the interactive REPL."""
    args = sys.argv[1:]
    if args and not args[0].startswith("-"):
        run_template_file(args[0], args[1] if len(args) > 1 else None)
        return

    print("Markup REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")
    print("Set the context with ':context <json or yaml>'.")

    runner = TemplateRunner()
    context = {}

    # REPL Loop
    while True:
        try:
            raw = read_line(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            if line.startswith(":context"):
                context = deserialize(line[len(":context"):].strip()) or {}
                continue

            result = runner.handle_template(line, context)

            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue

            _print_unresolved(result)
            print(result.value)

        except EOFError:
            print("\nExiting.")
            break
        except Exception as e:
            # Catch bad contexts and options and print them nicely
            print(f"Error: {e}", file=sys.stderr)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nExiting.")
