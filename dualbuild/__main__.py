import sys

import asyncio
import uvicorn

from dualbuild.commands import build_cross, build_native, run_from_github_env
from dualbuild.config import config
from dualbuild.web import app

USAGE = '''usage: dualbuild <command>

commands:
  run                          build both architectures for the GitHub event
  build-native [recipe]        build for the host architecture, prints the tag
  build-cross [recipe] [arch]  build for a foreign architecture under emulation
  server                       serve the GitHub webhook'''


def main():
    args = sys.argv[1:]
    if not args:
        print(USAGE, file=sys.stderr)
        sys.exit(2)
    command, *rest = args
    if command == 'run':
        sys.exit(asyncio.run(run_from_github_env()))
    elif command == 'build-native' and len(rest) <= 1:
        tag, status = asyncio.run(build_native(*rest))
        if tag:
            print(tag)
        sys.exit(status)
    elif command == 'build-cross' and len(rest) <= 2:
        sys.exit(asyncio.run(build_cross(*rest)))
    elif command == 'server':
        uvicorn.run(app, host=config.host, port=config.port)
    else:
        print(USAGE, file=sys.stderr)
        sys.exit(2)


if __name__ == '__main__':
    main()
