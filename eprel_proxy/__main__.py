from eprel_proxy.app import main

main()
