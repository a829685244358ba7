DEFAULT_NATIVE_RECIPE = '.github/workflows/Dockerfile'
DEFAULT_CROSS_RECIPE = '.github/workflows/Dockerfile.aarch64'
DEFAULT_IMAGE_NAME = 'ubuntu-bolt'
DEFAULT_BUILDER_NAME = 'dualbuild'
DEFAULT_BINFMT_IMAGE = 'tonistiigi/binfmt'

BINFMT_MISC_DIR = '/proc/sys/fs/binfmt_misc'

# docker architecture name -> kernel machine name
ARCH_MACHINES = {
    'amd64': 'x86_64',
    'arm64': 'aarch64',
    'arm': 'arm',
    '386': 'i386',
    'ppc64le': 'ppc64le',
    's390x': 's390x',
    'riscv64': 'riscv64',
    'mips64le': 'mips64el',
}

# GitHub's default activity types for the pull_request event
PULL_REQUEST_ACTIONS = ('opened', 'synchronize', 'reopened')

CHECK_RUN_TEXT_LIMIT = 65535
