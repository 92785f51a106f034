import sys

from headset_battery.cli import main

sys.exit(main())
