from antipodal.app import run

run()
