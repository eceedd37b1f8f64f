import sys

from ttl_router.main import main

sys.exit(main())
