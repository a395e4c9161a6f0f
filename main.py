# main.py
import sys

from core.logging_setup import setup_logging
from rune_sequence.ast import (
    GroupAlternative,
    MarkerAlternative,
    SequenceDefinition,
    TokenAlternative,
    compile_rotation,
    render,
)


def describe(definition: SequenceDefinition, indent: str = "") -> None:
    for si, step in enumerate(definition.steps):
        print(f"{indent}step {si}")
        for ti, term in enumerate(step.terms):
            print(f"{indent}  term {ti}")
            for alt in term.alternatives:
                if isinstance(alt, TokenAlternative):
                    extra = ""
                    if alt.modifiers:
                        extra += f" modifiers={list(alt.modifiers)}"
                    if alt.instance_label is not None:
                        extra += f" label=*{alt.instance_label}"
                    if alt.overrides is not None:
                        extra += f" overrides={alt.overrides.to_dict()}"
                    print(f"{indent}    {alt.key}{extra}")
                elif isinstance(alt, MarkerAlternative):
                    print(f"{indent}    ({alt.kind}) {alt.text}")
                elif isinstance(alt, GroupAlternative):
                    print(f"{indent}    group")
                    describe(alt.definition, indent + "      ")


def main():
    # 日志
    log_rt = setup_logging(level="INFO", console=True)

    try:
        text = " ".join(sys.argv[1:]) if len(sys.argv) > 1 else sys.stdin.read()
        result = compile_rotation(text)
        for d in result.diagnostics:
            print(d.format_line())
        if result.definition is None:
            return 1

        describe(result.definition)
        print(render(result.definition))
        return 0 if result.ok() else 1
    finally:
        log_rt.stop()


if __name__ == "__main__":
    sys.exit(main())
