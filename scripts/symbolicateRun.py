#     The Certora Prover
#     Copyright (C) 2025  Certora Ltd.
#
#     This program is free software: you can redistribute it and/or modify
#     it under the terms of the GNU General Public License as published by
#     the Free Software Foundation, version 3 of the License.
#
#     This program is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU General Public License for more details.
#
#     You should have received a copy of the GNU General Public License
#     along with this program.  If not, see <https://www.gnu.org/licenses/>.

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from rich.console import Console
from rich.table import Table
from rich.text import Text

scripts_dir_path = Path(__file__).parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))

from Symbolicator import symConfigIO as ConfigIO
from Symbolicator.symBuild import ModelBuildResult, create_models_and_decode_bytecodes
from Shared import symUtils as Util
from Shared.symLogging import ALL_TOPICS, LoggingManager

run_logger = logging.getLogger("run")


def get_args(args: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="symbolicate",
                                     description="*** Build the source model of a solc compilation and map its "
                                                 "bytecode back to the sources ***")
    parser.add_argument('files', nargs='*', help='A build info file (.json) or a configuration file (.conf)')
    parser.add_argument('--compiler_input', type=str, help='The solc standard json input of the compilation')
    parser.add_argument('--compiler_output', type=str, help='The solc standard json output of the compilation')
    parser.add_argument('--solc_version', type=str, help='The version of solc that produced the output')
    parser.add_argument('--output_file', type=str, help='Write the model as json to this file')
    parser.add_argument('--no_strict_selectors', action='store_true',
                        help='Report selectors that cannot be assigned to a function instead of failing')
    parser.add_argument('--debug', action='store_true', help='Show debug messages')
    parser.add_argument('--debug_topics', nargs='+', choices=ALL_TOPICS,
                        help='Only show the debug messages of these topics')
    parser.add_argument('--show_debug_topics', action='store_true',
                        help='Show the topic of every log message')
    parser.add_argument('--debug_log_file', type=str, help='Also write all debug messages to this file')
    parser.add_argument('--quiet', action='store_true', help='Only show warnings and errors')
    return parser.parse_args(args)


def print_summary(result: ModelBuildResult) -> None:
    table = Table(padding=(0, 1), header_style="bold")
    table.add_column(Text("Contract"), no_wrap=True)
    table.add_column(Text("Type"))
    table.add_column(Text("Functions"), justify="right")
    table.add_column(Text("Custom errors"), justify="right")
    table.add_column(Text("Deployment"), justify="right")
    table.add_column(Text("Runtime"), justify="right")

    for contract in result.contracts:
        deployment = result.get_bytecode(contract, True)
        runtime = result.get_bytecode(contract, False)
        table.add_row(contract.name,
                      str(contract.type),
                      str(len(contract.local_functions)),
                      str(len(contract.custom_errors)),
                      "-" if deployment is None else str(len(deployment.instructions)),
                      "-" if runtime is None else str(len(runtime.instructions)))
    Console().print(table)

    for diagnostic in result.diagnostics:
        print(Util.orange_text(f"{diagnostic.kind}: {diagnostic.message}"))


def run_symbolicator(args: List[str]) -> ModelBuildResult:
    """
    The main function that is responsible for the general flow of the script.
    The general flow is:
    1. Parse program arguments, and the configuration file if one was given
    2. Load the compilation and build its model
    3. Print a summary, and write the model to the output file if asked to
    """
    # If we are not in debug mode, we do not want to print the traceback in case of exceptions.
    if '--debug' not in args:
        sys.tracebacklimit = 0

    context = get_args(args)
    if ConfigIO.is_conf_file(context):
        ConfigIO.read_from_conf_file(context)

    logging_manager = LoggingManager(quiet=context.quiet,
                                     debug=context.debug,
                                     debug_topics=context.debug_topics,
                                     show_debug_topics=context.show_debug_topics,
                                     debug_log_file=Path(context.debug_log_file) if context.debug_log_file else None)
    try:
        config = ConfigIO.SymbolicatorConfig.from_context(context)
        solc_version, compiler_input, compiler_output = config.load_compilation()
        result = create_models_and_decode_bytecodes(solc_version, compiler_input, compiler_output,
                                                    strict_selectors=config.strict_selectors)

        if not context.quiet:
            print_summary(result)
        if config.output_file is not None:
            Util.write_json_file(result.as_dict(), config.output_file)
            run_logger.info(f"Model written to {config.output_file}")
        return result
    finally:
        logging_manager.tear_down()


def entry_point() -> None:
    """
    This function is the entry point of the symbolicate console script, as well as this script.
    It is important this function gets no arguments!
    """
    try:
        run_symbolicator(sys.argv[1:])
        Util.print_completion_message("Symbolication completed")
        sys.exit(0)
    except KeyboardInterrupt:
        Console().print("[bold red]\nInterrupted by user")
        sys.exit(1)
    except Util.SymbolicatorUserInputError as e:
        if e.orig:
            print(f"\n{str(e.orig).strip()}")
        if e.more_info:
            print(f"\n{e.more_info.strip()}")
        Console().print(f"[bold red]\n{e}\n")
        sys.exit(1)
    except Util.IncompatibleCompilerOutputError as e:
        Console().print(f"[bold red]Incompatible compiler output: {e}")
        sys.exit(1)
    except Exception as e:
        Console().print(f"[bold red]{e}")
        sys.exit(1)


if __name__ == '__main__':
    entry_point()
