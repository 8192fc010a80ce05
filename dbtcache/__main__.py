from dbtcache.cli import main

main()
