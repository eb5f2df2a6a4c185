import sys

from kubectl_explain_storage.cli import main

sys.exit(main())
