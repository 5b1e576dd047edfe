from layer_balancer.cli import main

raise SystemExit(main())
