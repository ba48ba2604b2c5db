import sys

from go_android_exec.cli import main

sys.exit(main())
