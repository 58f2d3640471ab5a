import sys
from pathlib import Path

from ircmacro import EvaluationContext, IdentifierParser, load_config

BANNER = "ircmacro REPL v0.1"


# A basic input prompt; tests replace it.
def read_line(prompt: str) -> str:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return sys.stdin.readline()


def default_context() -> EvaluationContext:
    return EvaluationContext(me="guest", nick="guest", channel="#ircmacro",
                             active="#ircmacro", server="localhost", network="local")


def _split_args(argv):
    """Returns (config_path, script_path) from argv[1:]."""
    config_path = None
    script_path = None
    args = list(argv)
    while args:
        arg = args.pop(0)
        if arg == "--config":
            if not args:
                print("Error: --config needs a path", file=sys.stderr)
                raise SystemExit(2)
            config_path = args.pop(0)
        elif not arg.startswith("-") and script_path is None:
            script_path = arg
    return config_path, script_path


def _print_effects(result):
    for effect in result.side_effects:
        if effect.get('topics') == ['stderr']:
            print(effect.get('message', ''), file=sys.stderr)


def run_script_file(file_path: str, parser: IdentifierParser, context: EvaluationContext):
    """Expand every line of a file and print the results."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    failed = False
    for line in source.splitlines():
        result = parser.expand(context, line)
        _print_effects(result)
        failed = failed or result.recursion_limited
        print(result.value)
    if failed:
        raise SystemExit(1)


def main(argv=None):
    """Run a script file when provided, otherwise start the interactive REPL."""
    config_path, script_path = _split_args(sys.argv[1:] if argv is None else argv)
    parser = IdentifierParser.from_config(load_config(config_path))
    context = default_context()

    if script_path is not None:
        run_script_file(script_path, parser, context)
        return

    print(BANNER)
    print("Type 'exit' or press Ctrl+D to quit.")

    while True:
        try:
            raw = read_line(">> ")
            if raw == "":
                raise EOFError
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue
            if line.strip() == "exit":
                break
            result = parser.expand(context, line)
            _print_effects(result)
            print(result.value)
        except EOFError:
            print("\nExiting.")
            break


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nExiting.")
