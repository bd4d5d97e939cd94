from almaverify.app import main

main()
