from scrypt_offload.cli import main

raise SystemExit(main())
