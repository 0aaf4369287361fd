from sar_ship_detector.cli import main

main()
